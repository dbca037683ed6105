"""DecimalNormalizer: Rescaling of integer amounts between fixed-point precisions.

Python integers are arbitrary precision, so intermediate products never
overflow. The only rounding ever applied is floor division.

.. code-block:: python

    >>> rescale(1_500_000, 6, 18)
    1500000000000000000
    >>> rescale(1_999_999_999_999, 18, 6)
    1
"""


def rescale(amount: int, from_decimals: int, to_decimals: int) -> int:
    """Rescale ``amount`` from ``from_decimals`` to ``to_decimals`` precision.

    :param amount: Non-negative integer amount.
    :param from_decimals: Precision the amount is currently expressed in.
    :param to_decimals: Target precision.
    :returns: ``floor(amount * 10**to_decimals / 10**from_decimals)``.
    :raises ValueError: If amount or either precision is negative.
    """
    if amount < 0:
        raise ValueError(f"amount must be non-negative, got {amount}")
    if from_decimals < 0 or to_decimals < 0:
        raise ValueError("decimals must be non-negative")

    if to_decimals >= from_decimals:
        return amount * 10 ** (to_decimals - from_decimals)
    return amount // 10 ** (from_decimals - to_decimals)


def mul_div(a: int, b: int, denominator: int) -> int:
    """Compute ``floor(a * b / denominator)`` without intermediate truncation.

    :param a: Non-negative multiplicand.
    :param b: Non-negative multiplier.
    :param denominator: Positive divisor.
    :returns: Floored quotient.
    :raises ValueError: On negative operands.
    :raises ZeroDivisionError: If denominator is zero.
    """
    if a < 0 or b < 0 or denominator < 0:
        raise ValueError("mul_div operands must be non-negative")
    return a * b // denominator
