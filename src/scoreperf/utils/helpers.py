#just a set of utils functions for scoreperf package
import re

def pascal_to_snake(pascal_str):
    s1 = re.sub('(.)([A-Z][a-z]+)', r'\1_\2', pascal_str)
    class_snake = re.sub('([a-z0-9])([A-Z])', r'\1_\2', s1).lower()
    return class_snake

def format_number(x, digits=10):
    """Compact number formatting used in bin labels, e.g. 550.0 -> '550'."""
    return f"{x:.{digits}g}"

def interval_label(lower, upper):
    """Label of the half-open interval [lower, upper)."""
    return f"[{format_number(lower)},{format_number(upper)})"
