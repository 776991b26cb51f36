"""Device identifier normalization."""


def normalize(raw: str) -> str:
    """Canonical device id: upper case, colon separated.

    "5c-cf-7f-12-34-56" and "5C:CF:7F:12:34:56" both map to "5C:CF:7F:12:34:56".
    """
    return raw.upper().replace("-", ":")
