"""Output formatters for audited-query."""

from audited_query.formatters.base import Formatter, FormatterRegistry, registry
from audited_query.formatters.csv import CSVFormatter
from audited_query.formatters.json import JSONFormatter
from audited_query.formatters.table import TableFormatter
