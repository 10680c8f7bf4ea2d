"""Differentiation rules for the basic functions.

The sum, negation, difference, product and quotient rules are built into
:func:`symtree.core.differentiate.diff_forward`. Every other operator gets
its partial derivatives here and is differentiated with the chain rule.
"""
from symtree.cas.expr import (
    Abs,
    Max,
    Min,
    a,
    acos,
    asin,
    atan,
    b,
    cos,
    diff,
    exp,
    log,
    sin,
    sqrt,
    tan,
)


diff[a**b, a] = b * a ** (b - 1)
diff[a**b, b] = a**b * log(a)

diff[sqrt(a), a] = 1 / (2 * sqrt(a))
diff[exp(a), a] = exp(a)
diff[log(a), a] = 1 / a
diff[Abs(a), a] = a / Abs(a)

diff[sin(a), a] = cos(a)
diff[cos(a), a] = -sin(a)
diff[tan(a), a] = 1 / cos(a) ** 2
diff[asin(a), a] = 1 / sqrt(1 - a**2)
diff[acos(a), a] = -(1 / sqrt(1 - a**2))
diff[atan(a), a] = 1 / (a**2 + 1)

# The sign of a - b selects the argument of Max and Min. At a - b = 0 the
# derivative is undefined and evaluating it divides by zero.
_sign = (a - b) / Abs(a - b)

diff[Max(a, b), a] = (1 + _sign) / 2
diff[Max(a, b), b] = (1 - _sign) / 2
diff[Min(a, b), a] = (1 - _sign) / 2
diff[Min(a, b), b] = (1 + _sign) / 2
