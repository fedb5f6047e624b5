"""User-facing error messages and fixed assistant text for the backend."""

# Authentication messages
AUTH_INVALID_CREDENTIALS = "Could not validate credentials"
AUTH_TOKEN_INVALID = "Invalid token"

# Session messages
SESSION_NOT_FOUND = "Session not found"
SESSION_ACCESS_DENIED = "Access denied"
SESSION_INVALID_ID = "Invalid session ID"
SESSION_TITLE_REQUIRED = "Session title is required"
SESSION_PARTNER_PRIVATE = "Private sessions cannot have a partner"

# Message messages
MESSAGE_NOT_FOUND = "Message not found"
MESSAGE_CONTENT_REQUIRED = "Message content is required"
MESSAGE_PROCESSING_FAILED = "Failed to process message"

# Real-time channel messages
WS_INVALID_JSON = "Invalid JSON format"
WS_UNSUPPORTED_EVENT = "Only 'message' events are supported"

# Partner messages
PARTNER_NOT_FOUND = "Partner not found"
PARTNER_EXISTS = "Partnership already exists"
PARTNER_SELF = "You cannot partner with yourself"

# Assistant text
AI_SENDER_ID = "ai"
AI_SENDER_NAME = "Dr. AI Therapist"
AI_FALLBACK_REPLY = (
    "I apologize, but I'm experiencing a temporary technical issue. "
    "Please try sending your message again in a moment."
)
