"""Input checks shared by the services."""
from pydantic import AnyUrl, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from app.errors import ContentTooLong, EmptyContent

# Column sizes of users.name and of the users.avatar / posts.image_url columns
MAX_NAME_LENGTH = 255
MAX_URL_LENGTH = 2048

_url_adapter = TypeAdapter(AnyUrl)


def is_valid_url(value: str) -> bool:
    if len(value) > MAX_URL_LENGTH:
        return False
    try:
        _url_adapter.validate_python(value)
    except PydanticValidationError:
        return False
    return True


def clean_content(content: str | None, max_length: int, label: str) -> str:
    """Trim user-authored text and enforce non-empty / max length."""
    text = (content or "").strip()
    if not text:
        raise EmptyContent(f"{label} content is required")
    if len(text) > max_length:
        raise ContentTooLong(f"{label} must not exceed {max_length} characters")
    return text
