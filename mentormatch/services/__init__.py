from .mentor_store import MentorReferenceStore

__all__ = ["MentorReferenceStore"]
