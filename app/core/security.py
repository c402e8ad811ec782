import re
import html
from typing import Optional

def sanitize_input(text: Optional[str]) -> Optional[str]:
    """Basic input sanitization to prevent XSS in free-text fields."""
    if not isinstance(text, str):
        return text
    # Remove script blocks before escaping so their contents do not survive as text
    cleaned = re.sub(r'<script.*?>.*?</script>', '', text, flags=re.DOTALL | re.IGNORECASE)
    return html.escape(cleaned.strip(), quote=False)
