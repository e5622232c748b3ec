"""API dependencies"""
from fastapi import Depends, HTTPException, Request, status
from pantry.application.use_cases.inventory_use_cases import InventoryUseCases
from pantry.domain.exceptions import (
    InventoryError,
    ItemAlreadyExistsError,
    ItemNotFoundError,
    StoreError,
    ValidationError,
)
from pantry.domain.repositories.blob_store import BlobStore
from pantry.domain.repositories.inventory_repository import DocumentStore
from pantry.infrastructure.storage import ImageLimits


def get_document_store(request: Request) -> DocumentStore:
    """Get the document store created at application startup"""
    return request.app.state.document_store


def get_blob_store(request: Request) -> BlobStore:
    """Get the blob store created at application startup"""
    return request.app.state.blob_store


def get_image_limits(request: Request) -> ImageLimits:
    """Get the upload limits built from the application's settings"""
    return request.app.state.image_limits


def get_inventory_use_cases(
    document_store: DocumentStore = Depends(get_document_store),
    blob_store: BlobStore = Depends(get_blob_store),
    image_limits: ImageLimits = Depends(get_image_limits),
) -> InventoryUseCases:
    """Get inventory use cases instance bound to the application's stores"""
    return InventoryUseCases(document_store, blob_store, image_limits)


def inventory_http_error(error: InventoryError) -> HTTPException:
    """Map an inventory error onto the HTTP status the API reports"""
    if isinstance(error, ValidationError):
        status_code = status.HTTP_400_BAD_REQUEST
    elif isinstance(error, ItemNotFoundError):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, ItemAlreadyExistsError):
        status_code = status.HTTP_409_CONFLICT
    elif isinstance(error, StoreError):
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=status_code, detail=str(error))
