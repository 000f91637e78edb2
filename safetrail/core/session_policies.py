"""Session and alert policy constants."""

from __future__ import annotations

# Session status values
STATUS_ACTIVE = "active"
STATUS_EXPIRED = "expired"
STATUS_DEACTIVATED = "deactivated"
TERMINAL_STATUSES = frozenset({STATUS_EXPIRED, STATUS_DEACTIVATED})

# Reasons reported by validity checks and deactivation
REASON_NOT_FOUND = "not-found"
REASON_INCORRECT_PIN = "incorrect-pin"
# Sent to a joiner when the session store could not be read
STATUS_UNKNOWN = "unknown"

# Contacts per session
MIN_CONTACTS = 1
MAX_CONTACTS = 5

# E.164: "+" followed by 7 to 15 ASCII digits. Checked with re.fullmatch.
PHONE_PATTERN = r"\+[0-9]{7,15}"
PIN_PATTERN = r"[0-9]{4}"

# Notification channels and alert outcomes
CHANNEL_WHATSAPP = "whatsapp"
CHANNEL_SMS = "sms"
ALERT_SENT = "sent"
ALERT_FAILED = "failed"
ALERT_DELIVERED = "delivered"  # reserved for delivery webhooks
