"""
utils/constants.py

Purpose: Centralized static content

- User-facing error messages
- Payment and event constants

(Prevents hardcoding across the codebase)
"""

# ============================================================
# AUTHENTICATION
# ============================================================

NO_SESSION_MESSAGE = "No session found"
INVALID_SESSION_MESSAGE = "Invalid or expired session"
INVALID_CREDENTIALS_MESSAGE = "Invalid credentials"
EMAIL_IN_USE_MESSAGE = "Email already in use"
USER_NOT_FOUND_MESSAGE = "User not found"

# bcrypt rejects (or on older releases truncates) anything longer
MAX_PASSWORD_BYTES = 72
PASSWORD_TOO_LONG_MESSAGE = f"password must be at most {MAX_PASSWORD_BYTES} bytes"

# ============================================================
# PAYMENTS
# ============================================================

PAYMENT_RECORD_NOT_FOUND_MESSAGE = "Payment record not found"
PAYMENT_NOT_COMPLETED_MESSAGE = "Payment not completed"
CHECKOUT_FAILED_MESSAGE = "Error creating checkout session"
PAYMENT_VERIFY_FAILED_MESSAGE = "Error verifying payment"
NOT_CONFIGURED_MESSAGE = "Payment service is not configured"

# Stripe checkout payment_status value meaning funds were captured
STRIPE_PAID_STATUS = "paid"
