"""Smoke tests for upload pipeline exceptions."""

import pytest
from orapost.core.exceptions import (
    AuthenticationError,
    InvalidStatusTransitionError,
    ProcessingError,
    QueueItemNotFoundError,
    StorageError,
    UploadError,
    UploadPipelineError,
    ValidationError,
)


def test_exception_hierarchy():
    """Test that all exceptions inherit from UploadPipelineError."""
    assert issubclass(ValidationError, UploadPipelineError)
    assert issubclass(AuthenticationError, UploadPipelineError)
    assert issubclass(ProcessingError, UploadPipelineError)
    assert issubclass(UploadError, UploadPipelineError)
    assert issubclass(StorageError, UploadPipelineError)
    assert issubclass(QueueItemNotFoundError, UploadPipelineError)
    assert issubclass(InvalidStatusTransitionError, UploadPipelineError)


def test_exceptions_can_be_caught_as_base():
    """Test that specific exceptions can be caught as UploadPipelineError."""
    with pytest.raises(UploadPipelineError):
        raise UploadError("Image upload failed: network error")

    with pytest.raises(UploadPipelineError):
        raise AuthenticationError("User not authenticated")


def test_message_is_preserved():
    assert str(UploadError("Upload timed out after 120 seconds")) == "Upload timed out after 120 seconds"
