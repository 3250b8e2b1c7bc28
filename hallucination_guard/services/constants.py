"""
Services - Constants

Fixed patterns, reference lists and user-facing messages shared by the
validation layers.
"""

import re


class WarningMessages:
    """Warnings attached to retrieval metadata and validation results."""
    LOW_CONFIDENCE = (
        "This response is based on limited documentation. Consider verifying details."
    )
    NO_SOURCES = (
        "No documentation sources found for this query. "
        "Response is based on general knowledge."
    )
    POTENTIAL_HALLUCINATION = (
        "Some information in this response could not be verified against documentation."
    )
    SINGLE_SOURCE = (
        "Response based on a single source. "
        "Consider verifying with additional documentation."
    )


# Severities assigned by the pattern detector
ENDPOINT_SEVERITY = 1.0
COUNTRY_SEVERITY = 0.9
PRICE_SEVERITY = 0.8

# A hallucination at or above this severity makes an answer ungrounded
HIGH_SEVERITY = 0.7

# Price values closer than this are considered the same price
PRICE_TOLERANCE = 0.01

# Shorter normalized paths are too generic to judge
MIN_ENDPOINT_LENGTH = 5

# Countries the detector knows how to recognise (lowercase)
COUNTRY_NAMES = (
    "argentina", "bolivia", "brazil", "brasil", "chile", "colombia",
    "costa rica", "dominican republic", "ecuador", "el salvador",
    "guatemala", "honduras", "mexico", "panama", "paraguay", "peru",
    "uruguay", "venezuela", "united states", "usa", "spain", "global",
)

COUNTRY_PATTERNS = {
    country: re.compile(rf"\b{re.escape(country)}\b", re.IGNORECASE)
    for country in COUNTRY_NAMES
}

# "endpoint: /v2/users", "url https://api.example.com/v1/x"
KEYWORD_ENDPOINT_PATTERN = re.compile(
    r"(?<![\w/])(?:endpoint|url|api|path|route)s?\b[\s:]*[`\"']?"
    r"((?:https?://[\w.-]+|[\w-]+(?:\.[\w-]+)+)?/[\w\-/.{}]+)",
    re.IGNORECASE,
)

# Bare versioned or /api/ paths anywhere in the text, optionally with a host
BARE_ENDPOINT_PATTERN = re.compile(
    r"(?<![\w/.{}-])((?:https?://[\w.-]+)?/(?:v\d+|api)/[\w\-/{}]+)",
    re.IGNORECASE,
)

# Amount followed by a currency unit, for keyword prices written without "$"
CURRENCY_UNIT_AHEAD = r"(?=\d[\d,]*(?:\.\d+)?\s*(?:USD|COP|EUR|credits?)\b)"

# "cost is $999.99", "Precio: 2500 COP", "$1,200"; "rate of 5 per second" is not a price
PRICE_PATTERN = re.compile(
    r"(?:\b(?:price|cost|precio|costo|fee|rate)s?\b(?:\s+(?:is|of|es|de))?"
    r"[\s:]*[`\"']?(?:(?P<symbol>\$)\s*|" + CURRENCY_UNIT_AHEAD + r")"
    r"|(?P<bare_symbol>\$)\s*)"
    r"(?P<amount>\d[\d,]*(?:\.\d+)?)",
    re.IGNORECASE,
)

NO_DOCUMENTATION_CONTEXT = "No relevant documentation found for this query."

# Appended to the retrieved context handed to the answering model
GROUNDING_RULES = """
## Grounding rules

- Only state endpoints, prices, parameters and country availability that appear in the documentation above.
- When asked for a list, list only the items present in the documentation.
- If the documentation does not cover something, say so instead of guessing.
"""
