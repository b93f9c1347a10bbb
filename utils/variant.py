"""
Variant key helpers.

Stock is tracked per color x size combination under a composite key
"{color}-{size}". Colors may themselves contain hyphens ("off-white"),
sizes do not, so keys are split on the last hyphen.
"""


def make_variant_key(color: str, size: str) -> str:
    return f"{color}-{size}"


def split_variant_key(variant_key: str) -> tuple[str, str]:
    color, _, size = variant_key.rpartition('-')
    return color, size
