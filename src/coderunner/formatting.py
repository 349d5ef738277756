import re

# Opening fences may carry a language tag (```tsx)
_FENCE_LINE = re.compile(r"^[ \t]*```[\w+-]*[ \t]*$", re.MULTILINE)


def format_code(code: str) -> str:
    """Strip markdown code fences the generator sometimes wraps around its output."""
    return _FENCE_LINE.sub("", code).replace("```", "").strip()
