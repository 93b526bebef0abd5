from __future__ import annotations
import re
from dataclasses import dataclass, field, replace

import sqlparse
from sqlparse.sql import Comparison, Identifier, IdentifierList, Statement, Where
from sqlparse.tokens import (
    DML,
    Keyword,
    Name,
    Number,
    Operator,
    Punctuation,
    String,
    Whitespace,
    Wildcard,
)

from litereader.consts import TABLE_CREATION_REGEX
from litereader.errors import QuerySyntaxError
from litereader.filtering import ValueFilter

from typing import TYPE_CHECKING, Any, List, Optional, Tuple

if TYPE_CHECKING:
    from litereader.database import Database

COUNT_ALL = "count(*)"
ALL_COLUMNS = "*"

TABLE_NAME_REGEX = (
    r"^\s*create\s+table\s+(?:if\s+not\s+exists\s+)?"
    r"(\"[^\"]+\"|`[^`]+`|\[[^\]]+\]|[^\s(]+)\s*\("
)
# Items of a column list that describe the table rather than a column
TABLE_CONSTRAINT_KEYWORDS = ("constraint", "primary", "unique", "check", "foreign")
TABLE_PRIMARY_KEY_REGEX = r"\bprimary\s+key\s*\(([^)]*)\)"


@dataclass
class ColumnDefinition:
    name: str
    type_tokens: List[str] = field(default_factory=list)
    # set when a table constraint, PRIMARY KEY (name), makes this column the only key
    table_primary_key: bool = False

    @property
    def is_rowid_alias(self) -> bool:
        """
        A column whose declared type is exactly INTEGER and that is the table's
        only PRIMARY KEY aliases the row id.
        https://www.sqlite.org/lang_createtable.html#rowid
        """
        tokens = [token.lower() for token in self.type_tokens]
        if not tokens or tokens[0] != "integer":
            return False
        if self.table_primary_key:
            return True
        return any(
            tokens[i : i + 2] == ["primary", "key"] for i in range(1, len(tokens) - 1)
        )


@dataclass
class CreateTable:
    table_name: str
    columns: List[ColumnDefinition]


@dataclass
class SelectStatement:
    table_name: str
    columns: List[str]
    value_filter: Optional[ValueFilter] = None

    @property
    def is_count(self) -> bool:
        return self.columns == [COUNT_ALL]


def parse_select(query_str: str) -> SelectStatement:
    """
    Extracts the table name, the requested columns and the optional
    single-condition WHERE clause of queries like

        SELECT COUNT(*) FROM apples
        SELECT name, color FROM apples WHERE color = 'Red'

    Any other clause (ORDER BY, LIMIT, GROUP BY, joins) is rejected.
    """
    statement = _parse_single_statement(query_str)
    if statement.get_type() != "SELECT":
        raise QuerySyntaxError(f"Only SELECT queries are supported: {query_str}")

    table_name, value_filter = _extract_from_clause(statement)
    return SelectStatement(
        table_name=table_name,
        columns=_extract_columns_names_from_query(statement),
        value_filter=value_filter,
    )


def _parse_single_statement(query_str: str) -> Statement:
    statements = [s for s in sqlparse.parse(query_str) if str(s).strip()]
    if len(statements) != 1:
        raise QuerySyntaxError(f"Expected exactly one statement: {query_str}")
    return statements[0]


def _extract_from_clause(statement: Statement) -> Tuple[str, Optional[ValueFilter]]:
    found_from = False
    table_name = None
    value_filter = None
    for token in statement.tokens:
        if token.is_whitespace or (token.ttype is Punctuation and token.value == ";"):
            continue
        elif not found_from:
            found_from = token.ttype == Keyword and token.value.upper() == "FROM"
        elif table_name is None and isinstance(token, Identifier):
            table_name = token.get_real_name()
        elif table_name is None and token.ttype in (Name, Keyword):
            table_name = _unquote(token.value)
        elif table_name is not None and value_filter is None and isinstance(token, Where):
            value_filter = _extract_value_filter_from_query(token)
        else:
            raise QuerySyntaxError(
                f"Unsupported clause '{token.value}' in query {statement}"
            )

    if table_name is None:
        raise QuerySyntaxError(f"Failed to extract table name from query {statement}")

    return table_name, value_filter


def _extract_value_filter_from_query(where_clause: Where) -> ValueFilter:
    comparisons = []
    for token in where_clause.tokens:
        if token.is_whitespace or token.ttype is Punctuation:
            continue
        elif token.ttype is Keyword and token.value.upper() == "WHERE":
            continue
        elif isinstance(token, Comparison):
            comparisons.append(token)
        else:
            raise QuerySyntaxError(
                f"Only a single comparison is supported in WHERE: {where_clause}"
            )

    if len(comparisons) != 1:
        raise QuerySyntaxError(
            f"Only a single comparison is supported in WHERE: {where_clause}"
        )

    comparison_parts = [t for t in comparisons[0].tokens if not t.is_whitespace]
    if len(comparison_parts) != 3 or comparison_parts[1].ttype is not Operator.Comparison:
        raise QuerySyntaxError(f"Cannot understand condition {comparisons[0]}")

    column, operator, value = comparison_parts
    return ValueFilter(_column_name(column), operator.value, _literal(value))


def _literal(token) -> Any:
    if token.ttype in String.Single:
        return token.value[1:-1].replace("''", "'")
    elif token.ttype in Number.Integer:
        return int(token.value)
    elif token.ttype in Number.Float:
        return float(token.value)

    raise QuerySyntaxError(f"Expected a string or number literal, got {token.value}")


def _extract_columns_names_from_query(statement: Statement) -> List[str]:
    column_names = []

    for token in statement.tokens:
        if token.ttype is Keyword and token.value.upper() == "FROM":
            break
        elif token.ttype in (DML, Whitespace, Punctuation) or token.is_whitespace:
            continue
        elif isinstance(token, IdentifierList):
            column_names += [
                _column_name(identifier) for identifier in token.get_identifiers()
            ]
        else:
            column_names.append(_column_name(token))

    if not column_names:
        raise QuerySyntaxError(f"No columns selected in query {statement}")

    return column_names


def _column_name(token) -> str:
    # count(*) is grouped as a Function, possibly with whitespace inside
    if "".join(token.value.split()).lower() == COUNT_ALL:
        return COUNT_ALL
    if token.ttype is Wildcard:
        return ALL_COLUMNS
    if isinstance(token, Identifier):
        return token.get_real_name()
    return _unquote(token.value)


def parse_create_table(sql_creation_query: str) -> CreateTable:
    """
    Creation query will look like

    '''CREATE TABLE apples
    (
        id integer primary key autoincrement,
        name text,
        color text
    )'''

    sqlparse does not group the column definitions of a creation query. As such,
    we opt for regex matching the content inside the outermost parenthesis and
    splitting it on the commas that are not nested in another parenthesis
    """
    if not sql_creation_query:
        raise QuerySyntaxError("Missing CREATE TABLE statement")

    sql_creation_query = sqlparse.format(sql_creation_query, strip_comments=True)
    statement = _parse_single_statement(sql_creation_query)
    if statement.get_type() != "CREATE":
        raise QuerySyntaxError(
            f"Expected a CREATE TABLE statement: {sql_creation_query}"
        )

    sql_creation_query = re.sub(r"\s+", " ", sql_creation_query).strip()

    table_match = re.search(TABLE_NAME_REGEX, sql_creation_query, re.IGNORECASE)
    # find the content inside parenthesis
    columns_match = re.search(TABLE_CREATION_REGEX, sql_creation_query)
    if not table_match or not columns_match:
        raise QuerySyntaxError(
            f"Could not regex match sql creation query: {sql_creation_query}"
        )

    columns = []
    primary_key_columns = []
    for column_definition in _split_top_level(columns_match.group(1)):
        # return all words or quoted strings
        tokens = re.findall(r'"[^"]*"|`[^`]*`|\[[^\]]*\]|\S+', column_definition)
        if not tokens:
            continue
        elif tokens[0].lower() in TABLE_CONSTRAINT_KEYWORDS:
            primary_key_match = re.search(
                TABLE_PRIMARY_KEY_REGEX, column_definition, re.IGNORECASE
            )
            if primary_key_match:
                primary_key_columns = [
                    _unquote(name.split()[0]).lower()
                    for name in primary_key_match.group(1).split(",")
                    if name.strip()
                ]
            continue
        columns.append(ColumnDefinition(_unquote(tokens[0]), tokens[1:]))

    # only a single column key makes that column an alias of the row id
    if len(primary_key_columns) == 1:
        for column in columns:
            if column.name.lower() == primary_key_columns[0]:
                column.table_primary_key = True

    return CreateTable(_unquote(table_match.group(1)), columns)


def _split_top_level(column_list: str) -> List[str]:
    parts = []
    depth = 0
    current = ""
    for char in column_list:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        elif char == "," and depth == 0:
            parts.append(current.strip())
            current = ""
            continue
        current += char
    parts.append(current.strip())

    return [part for part in parts if part]


def _unquote(name: str) -> str:
    if len(name) >= 2 and (name[0], name[-1]) in (('"', '"'), ("`", "`"), ("[", "]")):
        return name[1:-1]
    return name


class Query:
    """A parsed SELECT, executed against the rows of a single-page table"""

    query_str: str
    select: SelectStatement

    def __init__(self, query_str: str, select: SelectStatement):
        self.query_str = query_str
        self.select = select

    @staticmethod
    def parse_query(query_str: str) -> Query:
        return Query(query_str, parse_select(query_str))

    def execute(self, database: Database) -> List[List[Any]]:
        table_schema = database.get_table_schema(self.select.table_name)
        declared = {
            column.name.lower(): column.name
            for column in parse_create_table(table_schema.sql).columns
        }

        rows = database.read_rows(self.select.table_name)
        value_filter = self.select.value_filter
        if value_filter is not None:
            if value_filter.column.lower() not in declared:
                raise QuerySyntaxError(
                    f"No such column in {self.select.table_name}: {value_filter.column}"
                )
            value_filter = replace(
                value_filter, column=declared[value_filter.column.lower()]
            )
            rows = [row for row in rows if value_filter(row)]

        if self.select.is_count:
            return [[len(rows)]]

        requested_column_names = []
        for column_name in self.select.columns:
            if column_name == ALL_COLUMNS:
                requested_column_names += list(declared.values())
            elif column_name.lower() in declared:
                requested_column_names.append(declared[column_name.lower()])
            else:
                raise QuerySyntaxError(
                    f"No such column in {self.select.table_name}: {column_name}"
                )

        return [
            [row[column_name] for column_name in requested_column_names]
            for row in rows
        ]


def format_rows(rows: List[List[Any]]) -> str:
    return "\n".join(
        "|".join(_format_value(entry) for entry in row) for row in rows
    )


def _format_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf8", errors="replace")
    return str(value)
