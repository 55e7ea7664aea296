from .mentor_indexer import IndexReport, MentorIndexer, vector_id_for

__all__ = ["IndexReport", "MentorIndexer", "vector_id_for"]
