"""Custom exceptions shared across Proma.

Every domain error carries a machine-readable code and an HTTP status code so
the API layer can turn it into a structured response without inspecting its
type.
"""


class ChatError(Exception):
    """Base exception for all chat-related errors.

    Attributes:
        code: Machine-readable error code
        message: Human-readable error message
        status_code: HTTP status code for API responses
    """

    def __init__(self, message: str, code: str, status_code: int) -> None:
        """Initialize chat error.

        Args:
            message: Human-readable error description
            code: Machine-readable error code
            status_code: HTTP status code (400, 404, 500, etc.)
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code


class ValidationError(ChatError):
    """Raised when input validation fails."""

    def __init__(self, message: str) -> None:
        super().__init__(message=message, code="validation_error", status_code=400)


class ConversationNotFoundError(ChatError):
    """Raised when a conversation id does not exist in the store."""

    def __init__(self, conversation_id: str) -> None:
        super().__init__(
            message=f"Conversation not found: {conversation_id}",
            code="conversation_not_found",
            status_code=404,
        )
        self.conversation_id = conversation_id


class ChannelNotFoundError(ChatError):
    """Raised when a channel (backend + credential) id does not exist."""

    def __init__(self, channel_id: str) -> None:
        super().__init__(
            message=f"Channel not found: {channel_id}",
            code="channel_not_found",
            status_code=404,
        )
        self.channel_id = channel_id


class CredentialDecryptionError(ChatError):
    """Raised when a channel's API key cannot be decrypted.

    The message never includes key material.
    """

    def __init__(self, channel_id: str) -> None:
        super().__init__(
            message=f"Failed to decrypt API key for channel {channel_id}",
            code="credential_decryption_failed",
            status_code=500,
        )
        self.channel_id = channel_id
