from .columns import infer_property_type, infer_value_type, populate_shape_columns
from .count import COUNT_TIMEOUT_SECONDS, estimate_count
from .shapes import collect_sample, discover_shape, discover_shapes

__all__ = [
    "infer_property_type",
    "infer_value_type",
    "populate_shape_columns",
    "COUNT_TIMEOUT_SECONDS",
    "estimate_count",
    "collect_sample",
    "discover_shape",
    "discover_shapes",
]
