"""Where-clause helpers for the study collections.

Only the two comparisons the record store needs are exposed: ownership
lookups (``userId == uid``) and reverse reference lookups
(``noteIds array_contains note_id``).
"""

from google.cloud.firestore_v1.base_query import FieldFilter

EQUALS = '=='
ARRAY_CONTAINS = 'array_contains'
SUPPORTED_OPERATORS = (EQUALS, ARRAY_CONTAINS)


def filtered(query, field_path, op_string, value):
    if op_string not in SUPPORTED_OPERATORS:
        raise ValueError(f"Unsupported where operator: {op_string}")
    field_filter = FieldFilter(field_path, op_string, value)
    try:
        return query.where(filter=field_filter)
    except TypeError:
        # Hand-written query doubles only take the positional triple.
        return query.where(field_path, op_string, value)


def where_equals(collection, field_path, value):
    return filtered(collection, field_path, EQUALS, value)


def where_array_contains(collection, field_path, value):
    return filtered(collection, field_path, ARRAY_CONTAINS, value)
