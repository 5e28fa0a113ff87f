from typing import Optional


class PasaElDatoError(Exception):
    """Base class for errors raised by the tips/communities core."""

    status_code = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(PasaElDatoError):
    """Malformed client input: coordinates, bounding boxes, tip variants, ids."""

    status_code = 400


class NotFoundError(PasaElDatoError):
    status_code = 404

    def __init__(self, entity: str, entity_id: Optional[str] = None):
        detail = f"{entity} not found" if entity_id is None else f"{entity} {entity_id} not found"
        super().__init__(detail)
        self.entity = entity
        self.entity_id = entity_id


class ConflictError(PasaElDatoError):
    status_code = 409


class InternalError(PasaElDatoError):
    """Persistence or query failure unrelated to the request's input."""

    status_code = 500
