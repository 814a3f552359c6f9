"""Domain Layer: value objects, result schema, errors, events and ports.

Has no dependency on the infrastructure layer.
"""
