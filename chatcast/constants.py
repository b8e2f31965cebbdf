"""
Application-level constants for hardcoded behavior.

These values define the wire format of outbound frames and protocol level
close codes. They are not meant to be changed via environment variables;
configurable values live in chatcast/settings.py.
"""

# ============================================================================
# Outbound frame formats
# ============================================================================

# Rebroadcast of a received text frame
CHAT_MESSAGE_FORMAT = "Client #{client_id}: {data}"

# Synthetic notice sent to remaining members when a connection closes
DEPARTURE_NOTICE_FORMAT = "Client #{client_id} has left the chat"


# ============================================================================
# WebSocket Protocol Constants (RFC 6455)
# ============================================================================

# Server is going away (process shutdown)
WS_GOING_AWAY_CODE = 1001

# Received a frame type the endpoint does not accept (binary)
WS_UNSUPPORTED_DATA_CODE = 1003

# Peer could not keep up with outbound traffic
WS_TRY_AGAIN_LATER_CODE = 1013


# ============================================================================
# Logging
# ============================================================================

# Loki rejects entries above this size, longer messages are truncated
LOKI_MAX_LOG_SIZE_BYTES = 256 * 1024

# Length of per-connection correlation ids
CORRELATION_ID_LENGTH = 8
