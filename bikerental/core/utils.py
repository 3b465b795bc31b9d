# bikerental/core/utils.py
from typing import Any, Dict

from beanie import Document
from bson import ObjectId
from fastapi import HTTPException, status


def parse_object_id(value: str, label: str) -> ObjectId:
    """Converts a path/body id to ObjectId, 400 when it is not a valid id."""
    if not value or not ObjectId.is_valid(value):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid {label} ID format.")
    return ObjectId(value)


def document_data(doc: Document) -> Dict[str, Any]:
    """JSON-ready dict of a document with its id as a plain string."""
    data = doc.model_dump(mode="json")
    data["id"] = str(doc.id)
    return data
