"""guardpay: Stripe payment-event reconciliation for the guard booking marketplace."""
