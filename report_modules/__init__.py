"""
report_modules -- application modules built on the report engines.

Modules orchestrate engines, configuration and kernel selectors into
user-facing operations.  Each module is a subpackage exposing a service,
its config and its result models.
"""
