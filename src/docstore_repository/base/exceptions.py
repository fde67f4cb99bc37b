class InvalidFilterExpressionException(Exception):
    """Exception raised when a query string does not match the filter grammar."""

    def __init__(self, expression: str, message: str = "Invalid filter expression"):
        self.expression = expression
        super().__init__(f"{message}: {expression!r}")


class IncoherentEntityStateException(Exception):
    """Exception raised when an entity's identifier contradicts its tracker state."""

    def __init__(self, entity_name: str):
        self.entity_name = (entity_name or "").strip()
        super().__init__(f"Incoherent entity state for {self.entity_name}")


class PropertyIdNotFoundException(Exception):
    """Exception raised when an entity type lacks a well-formed identifier field."""

    def __init__(self, entity_name: str):
        if entity_name is None:
            raise ValueError("entity_name is required")
        entity_name = entity_name.strip()
        if not entity_name:
            raise ValueError("entity_name must not be empty")
        self.entity_name = entity_name
        super().__init__(f"Property id not found on {entity_name}")


class RepositoryContextNotInitializedException(Exception):
    """Exception raised when a repository is used before `initialize` was called."""

    def __init__(self, repository_name: str):
        self.repository_name = repository_name
        super().__init__(f"Repository context not initialized for {repository_name}")


class FileNotExistsException(Exception):
    """Exception raised when a blob identifier has no matching metadata row."""

    def __init__(self, file_id: str):
        if file_id is None:
            raise ValueError("file_id is required")
        file_id = file_id.strip()
        if not file_id:
            raise ValueError("file_id must not be empty")
        self.file_id = file_id
        super().__init__(f"File '{file_id}' does not exist")
