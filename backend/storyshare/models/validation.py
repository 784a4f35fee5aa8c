"""
StoryShare Backend — Document Validation
==========================================

What:  Plain validation functions for story and comment input, plus the
       identifier syntax check.
How:   Each validator returns a ValidationResult instead of raising, so the
       rules stay independent of MongoDB and are easy to test. The stores
       call them before any write and raise ValidationError on failure.

Rules:
    Story:   title (required, ≤200), content (required), authorName
             (required, ≤100); coverImage optional.
    Comment: text (required, ≤500), commenterName (required, ≤100).
    A value is "missing" when it is None, not a string, or blank.
    Missing fields are reported before oversized ones.
"""

import re
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Tuple

from bson import ObjectId

from storyshare.models.comment import COMMENT_TEXT_MAX_LENGTH, COMMENTER_NAME_MAX_LENGTH
from storyshare.models.story import AUTHOR_NAME_MAX_LENGTH, TITLE_MAX_LENGTH

MISSING = "missing"
TOO_LONG = "too_long"
INVALID = "invalid"

_OBJECT_ID_PATTERN = re.compile(r"^[0-9a-fA-F]{24}$")

# (wire name, label used in messages, max length or None)
_STORY_FIELDS: Sequence[Tuple[str, str, Optional[int]]] = (
    ("title", "Title", TITLE_MAX_LENGTH),
    ("content", "Content", None),
    ("authorName", "Author name", AUTHOR_NAME_MAX_LENGTH),
)

_COMMENT_FIELDS: Sequence[Tuple[str, str, Optional[int]]] = (
    ("text", "Comment", COMMENT_TEXT_MAX_LENGTH),
    ("commenterName", "Commenter name", COMMENTER_NAME_MAX_LENGTH),
)


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a validation call. `kind` is None when `ok`."""

    ok: bool
    kind: Optional[str] = None
    fields: List[str] = field(default_factory=list)
    message: Optional[str] = None


VALID = ValidationResult(ok=True)


def _is_blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def _validate(values: dict, rules: Sequence[Tuple[str, str, Optional[int]]]) -> ValidationResult:
    missing = [name for name, _, _ in rules if _is_blank(values.get(name))]
    if missing:
        return ValidationResult(
            ok=False,
            kind=MISSING,
            fields=missing,
            message=f"Missing required field(s): {', '.join(missing)}",
        )

    too_long = [
        (name, label, limit)
        for name, label, limit in rules
        if limit is not None and len(values[name]) > limit
    ]
    if too_long:
        return ValidationResult(
            ok=False,
            kind=TOO_LONG,
            fields=[name for name, _, _ in too_long],
            message="; ".join(
                f"{label} cannot be more than {limit} characters" for _, label, limit in too_long
            ),
        )
    return VALID


def validate_story(
    title: Any,
    content: Any,
    author_name: Any,
    cover_image: Any = None,
) -> ValidationResult:
    result = _validate(
        {"title": title, "content": content, "authorName": author_name},
        _STORY_FIELDS,
    )
    if result.ok and cover_image is not None and not isinstance(cover_image, str):
        return ValidationResult(
            ok=False,
            kind=INVALID,
            fields=["coverImage"],
            message="Cover image must be a URL string",
        )
    return result


def validate_comment(text: Any, commenter_name: Any) -> ValidationResult:
    return _validate({"text": text, "commenterName": commenter_name}, _COMMENT_FIELDS)


def is_valid_object_id(value: Any) -> bool:
    """
    True for 24-character hex strings (and ObjectId instances).

    `ObjectId.is_valid` alone also accepts any 12-byte string, which would let
    ids like "abcdefghijkl" through; the regex limits it to the hex form.
    """
    if isinstance(value, ObjectId):
        return True
    return isinstance(value, str) and bool(_OBJECT_ID_PATTERN.match(value)) and ObjectId.is_valid(value)
