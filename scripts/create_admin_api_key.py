"""Issue a bearer token for an operator and grant it the company_admin role.

Usage: ``python scripts/create_admin_api_key.py <user-id> [role]``
"""
import sys

from guardpay.db import get_sessionmaker, init_engine
from guardpay.models.api_key import ApiKey, AppRole, UserRole
from guardpay.utils.apikey import gen_key


def main(argv: list[str]) -> int:
    if not argv:
        print(__doc__)
        return 2
    user_id = argv[0]
    role = AppRole(argv[1]) if len(argv) > 1 else AppRole.company_admin

    init_engine()
    SessionLocal = get_sessionmaker()
    raw_token, prefix, key_hash = gen_key()

    with SessionLocal.begin() as db:
        db.add(ApiKey(name=f"{role.value}-{prefix}", prefix=prefix, key_hash=key_hash, user_id=user_id))
        db.add(UserRole(user_id=user_id, role=role))

    print("==========================================")
    print(f"{role.value} API key created for user {user_id}")
    print("Use this key in your Authorization header:")
    print(f"    Authorization: Bearer {raw_token}")
    print("It is shown once; only its hash is stored.")
    print("==========================================")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
