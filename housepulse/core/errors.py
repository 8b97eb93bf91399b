class NormalizationError(ValueError):
    """Input payload cannot be turned into a canonical suburb record."""


class MissingFieldsError(NormalizationError):
    def __init__(self, missing: list[str]):
        self.missing = list(missing)
        super().__init__(f"Missing required fields: {', '.join(self.missing)}")


class InvalidJSONError(NormalizationError):
    def __init__(self, detail: str | None = None):
        self.detail = detail
        super().__init__("Invalid JSON" if not detail else f"Invalid JSON: {detail}")


class StoreError(RuntimeError):
    """Record store could not be read or written."""


class RecordNotFoundError(KeyError):
    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(record_id)

    def __str__(self):
        return f"Suburb not found: {self.record_id}"
