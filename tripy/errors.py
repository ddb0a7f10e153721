from typing import List, Optional


class TripInputError(ValueError):
    """Malformed or missing request field. The turn is aborted, context unchanged."""


class ProviderError(RuntimeError):
    """A search or booking collaborator failed unexpectedly."""


class UnknownLocationError(ValueError):
    def __init__(self, field: str, query: str, suggestions: Optional[List[dict]] = None):
        super().__init__(f"Unknown {field}: {query}")
        self.field = field
        self.query = query
        self.suggestions = suggestions or []
