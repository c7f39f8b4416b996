"""Exceptions raised by the upload pipeline."""


class UploadPipelineError(Exception):
    """Base exception for the upload pipeline."""
    pass


class ValidationError(UploadPipelineError):
    """Exception raised when a post submission fails validation."""
    pass


class AuthenticationError(UploadPipelineError):
    """Exception raised when no user is signed in."""
    pass


class ProcessingError(UploadPipelineError):
    """Exception raised when no image in a submission could be processed."""
    pass


class UploadError(UploadPipelineError):
    """Exception raised when the remote upload or post creation fails.

    The message is user facing and ends up on the failed queue item.
    """
    pass


class StorageError(UploadPipelineError):
    """Exception raised when storage operations fail."""
    pass


class QueueItemNotFoundError(UploadPipelineError):
    """Exception raised when a queue item id is unknown."""
    pass


class InvalidStatusTransitionError(UploadPipelineError):
    """Exception raised when a queue item cannot move to the requested status."""
    pass
