"""Background job handling for upload indexing."""

from .queue import DeadLetter, IndexingJob, IndexingQueue

__all__ = ["DeadLetter", "IndexingJob", "IndexingQueue"]
