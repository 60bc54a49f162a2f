# app/modules/auth/constants.py

"""
Centralized constants for the auth module.
Makes maintenance easier.
"""

# Session keys in the KV store
SESSION_PREFIX = "session:"
USER_SESSIONS_PREFIX = "user_sessions:"
IDLE_TIMEOUT_PREFIX = "session_idle:"
SESSION_LOCK_PREFIX = "lock:session:"

# How long create_session waits for the per-username lock
SESSION_LOCK_WAIT_SECONDS = 2.0
SESSION_LOCK_RETRY_SECONDS = 0.02

# OTP
OTP_PREFIX = "otp:"
OTP_MIN = 100000
OTP_MAX = 999999
OTP_EMAIL_SUBJECT = "Your One-Time Password (OTP)"

# Messages returned to callers
MSG_INVALID_CREDENTIALS = "Invalid username or password"
MSG_INVALID_OTP = "Invalid or expired OTP"
MSG_OTP_REQUIRED = "OTP required"
MSG_AUTHENTICATED = "Authentication successful"
MSG_REGISTERED = "User registered successfully"
