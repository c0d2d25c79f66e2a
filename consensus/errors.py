"""Errors raised by the consensus engine and the label store."""


class ConsensusError(Exception):
    """Base class for all consensus engine errors."""


class ValidationError(ConsensusError):
    """Input was rejected before any state change (bad label, bad item id, ...)."""


class NotFoundError(ConsensusError):
    """The referenced item does not exist."""

    def __init__(self, item_id: str):
        super().__init__(f"Comment not found: {item_id}")
        self.item_id = item_id


class DuplicateSubmissionError(ConsensusError):
    """The annotator already labeled this item."""

    def __init__(self, item_id: str, annotator_name: str):
        super().__init__(f"{annotator_name} has already labeled comment {item_id}")
        self.item_id = item_id
        self.annotator_name = annotator_name
