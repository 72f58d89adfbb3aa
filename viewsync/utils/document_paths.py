# =============================================================================
# File: viewsync/utils/document_paths.py
# Description: Slash-separated document/collection path helpers
# =============================================================================
#
# Paths alternate collection and document segments:
#   users                         -> collection
#   users/u1                      -> document
#   users/u1/favorites            -> collection
#   users/u1/favorites/f9         -> document
# =============================================================================

from typing import Tuple


def join_path(*segments: str) -> str:
    """Join segments into a path, rejecting empty or slash-containing segments."""
    for segment in segments:
        if not segment or "/" in segment:
            raise ValueError(f"Invalid path segment: {segment!r}")
    return "/".join(segments)


def document_path(collection: str, doc_id: str) -> str:
    """Path of document `doc_id` inside the (possibly nested) `collection`."""
    segments = split_path(collection)
    if len(segments) % 2 != 1:
        raise ValueError(f"Not a collection path: {collection!r}")
    return join_path(*segments, doc_id)


def split_path(path: str) -> Tuple[str, ...]:
    segments = tuple(path.strip("/").split("/"))
    if any(not s for s in segments):
        raise ValueError(f"Invalid path: {path!r}")
    return segments


def is_document_path(path: str) -> bool:
    return len(split_path(path)) % 2 == 0


def parent_collection(document_path: str) -> str:
    """users/u1/favorites/f9 -> users/u1/favorites"""
    segments = split_path(document_path)
    if len(segments) % 2 != 0:
        raise ValueError(f"Not a document path: {document_path!r}")
    return "/".join(segments[:-1])


def document_id(document_path: str) -> str:
    return split_path(document_path)[-1]
