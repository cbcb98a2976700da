"""Domain Event definitions.

Represents significant occurrences (retries, failures, queue drains) that
other parts of the system might observe through an event sink.
"""
