from typing import Set


def format_megabytes(nbytes: int) -> str:
    """
    Format a byte count as decimal megabytes with two decimal places.

    Decimal units are used: 1 MB = 1000 * 1000 bytes.

    Args:
        nbytes (int): The size in bytes. None is treated as zero.

    Returns:
        str: The size formatted like "12.35MB".

    Example:
        >>> format_megabytes(12345678)
        '12.35MB'
        >>> format_megabytes(0)
        '0.00MB'
    """
    if nbytes is None:
        nbytes = 0
    return f"{nbytes / 1000 / 1000:.2f}MB"


def split_csv(value: str) -> Set[str]:
    """
    Split a comma separated string into a set of non-empty, stripped items.

    Args:
        value (str): A string such as "latest,stable,5.22". None or "" yields an empty set.

    Returns:
        Set[str]: The distinct items.

    Example:
        >>> sorted(split_csv("latest, stable,,5.22"))
        ['5.22', 'latest', 'stable']
    """
    if not value:
        return set()
    return {item.strip() for item in value.split(",") if item.strip()}
