from .line_parser import DelimitedLineParser, QuoteState, parse_line
from .path_tree import HeaderPath, PathConflictPolicy, PathTreeAssembler, Record, build_record, split_header
from .document import DocumentParseResult, DocumentParser, FieldCountPolicy, RowFailure, parse_document
from .flatten import collect_headers, flatten_record, render_document

__all__ = [
    "DelimitedLineParser",
    "QuoteState",
    "parse_line",
    "HeaderPath",
    "PathConflictPolicy",
    "PathTreeAssembler",
    "Record",
    "build_record",
    "split_header",
    "DocumentParseResult",
    "DocumentParser",
    "FieldCountPolicy",
    "RowFailure",
    "parse_document",
    "collect_headers",
    "flatten_record",
    "render_document",
]
