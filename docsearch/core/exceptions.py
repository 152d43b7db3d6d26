"""Error taxonomy for the retrieval core."""


class DocSearchError(Exception):
    """Base error for the search core."""


class ValidationError(DocSearchError):
    """Invalid configuration or call arguments."""


class RetrievalError(DocSearchError):
    """Vector or lexical store call failed."""


class GenerationError(DocSearchError):
    """Embedding or text-generation call failed."""
