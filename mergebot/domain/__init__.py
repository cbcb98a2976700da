"""Domain Layer: value objects, data-transfer shapes, events, errors and ports."""
