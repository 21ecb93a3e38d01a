"""Chart selection and chart spec generation.

Selection is rule-based (``selector``); shaping rows into renderer payloads
lives in ``spec``.
"""

from analyst.viz.selector import VisualizationChoice, select_visualization
from analyst.viz.spec import coerce_numeric, extract_field, format_axis_value, generate_spec

__all__ = [
    "VisualizationChoice",
    "coerce_numeric",
    "extract_field",
    "format_axis_value",
    "generate_spec",
    "select_visualization",
]
