"""Subject alias lookup."""

from .models import SubjectAliasMap


def get_subject_display_name(category_code: str, aliases: SubjectAliasMap) -> str:
    """Return the user's alias for a category code, or the code itself.

    An empty code (uncategorized) always maps to an empty string.
    """
    if not category_code:
        return ""
    return aliases.get(category_code) or category_code
