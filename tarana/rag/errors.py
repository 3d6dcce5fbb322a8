"""Error taxonomy for the retrieval layer.

All of these propagate to the immediate caller; nothing in ``tarana.rag``
swallows them or retries on its own (see ``RetryPolicy`` for opt-in retries).
"""


class RetrievalError(Exception):
    """Base class for retrieval layer failures"""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class EmbeddingProviderError(RetrievalError):
    """Upstream embedding call failed (network, quota, malformed response)"""


class StoreUnavailableError(RetrievalError):
    """No initialized store credential, or the store rejected a read/write"""


class MalformedInputError(RetrievalError):
    """Non-string query, empty text, or an invalid result count"""
