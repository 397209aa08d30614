from jsonschema import validate as jsonschema_validate, ValidationError
from typing import Any, Dict, Optional

from logguard.core.errors import ConfigError


def _validate_document(document: Any, schema: Optional[Dict[str, Any]], where) -> None:
    """
    Validate a raw configuration document against its JSON schema before it
    is handed to the pydantic models, so that config mistakes are reported
    with the offending path instead of being silently dropped.
    """
    if not schema:
        return
    try:
        jsonschema_validate(instance=document, schema=schema)
    except ValidationError as e:
        location = "/".join(str(part) for part in e.absolute_path) or "<root>"
        raise ConfigError(f"{where} failed schema validation at {location}: {e.message}") from e
