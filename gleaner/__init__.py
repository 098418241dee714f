"""
Declarative field extraction from HTML documents.

A field map names the values to extract and how to locate them. The
FieldsParser dispatches every field to a handler picked by its action and
type, then normalizes the handler's result through a cascading filter chain
that degrades document nodes down to plain values.
"""

from gleaner.data_types import FAILED, FetchResult, FieldDescriptor
from gleaner.fields_parser import FieldsParser

__all__ = ["FAILED", "FetchResult", "FieldDescriptor", "FieldsParser"]
