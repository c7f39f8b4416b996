"""
Upload pipeline services

Post creation validates a multi-image submission, processes each image
and hands the batch to the upload queue, which uploads the images and
creates the posts in the background.
"""

from orapost.services.auth import AuthSession
from orapost.services.image_upload import ImageUploadService, UploadedImage
from orapost.services.post_creation import ImageDraft, PostCreationFlow, SubmissionResult
from orapost.services.posts import HttpPostService, LocalPostService, PostService
from orapost.services.upload_queue import UploadQueueService

__all__ = [
    "AuthSession",
    "ImageUploadService",
    "UploadedImage",
    "ImageDraft",
    "PostCreationFlow",
    "SubmissionResult",
    "HttpPostService",
    "LocalPostService",
    "PostService",
    "UploadQueueService",
]
