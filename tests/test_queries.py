import pytest

from litereader.database import Database
from litereader.errors import QuerySyntaxError
from litereader.filtering import ValueFilter
from litereader.queries import (
    ColumnDefinition,
    CreateTable,
    Query,
    SelectStatement,
    format_rows,
    parse_create_table,
    parse_select,
)

from builders import APPLES, APPLES_SQL


@pytest.mark.parametrize(
    "query, expected",
    [
        ("SELECT COUNT(*) FROM apples", SelectStatement("apples", ["count(*)"])),
        ("select count( * ) from apples", SelectStatement("apples", ["count(*)"])),
        ("SELECT name FROM apples", SelectStatement("apples", ["name"])),
        ("SELECT name, color FROM apples", SelectStatement("apples", ["name", "color"])),
        ('SELECT "name" FROM "apples"', SelectStatement("apples", ["name"])),
        ("SELECT * FROM apples", SelectStatement("apples", ["*"])),
    ],
)
def test_parse_select(query, expected):
    assert parse_select(query) == expected


def test_parse_select_count():
    assert parse_select("SELECT COUNT(*) FROM apples").is_count
    assert not parse_select("SELECT name FROM apples").is_count


@pytest.mark.parametrize(
    "query",
    ["DELETE FROM apples", "INSERT INTO apples VALUES (1)", "SELECT name", ""],
)
def test_parse_select_rejects(query):
    with pytest.raises(QuerySyntaxError):
        parse_select(query)


def test_parse_create_table():
    assert parse_create_table(APPLES_SQL) == CreateTable(
        "apples",
        [
            ColumnDefinition("id", ["integer", "primary", "key", "autoincrement"]),
            ColumnDefinition("name", ["text"]),
            ColumnDefinition("color", ["text"]),
        ],
    )


def test_parse_create_table_quoted_names_and_constraints():
    creation = parse_create_table(
        'CREATE TABLE "superheroes" (id integer, "full name" text not null, '
        "power decimal(10, 2), -- how strong\n"
        "PRIMARY KEY (id))"
    )
    assert creation.table_name == "superheroes"
    assert [column.name for column in creation.columns] == ["id", "full name", "power"]
    assert creation.columns[1].type_tokens == ["text", "not", "null"]


def test_parse_create_table_without_column_types():
    creation = parse_create_table("CREATE TABLE sqlite_sequence(name,seq)")
    assert creation == CreateTable(
        "sqlite_sequence", [ColumnDefinition("name"), ColumnDefinition("seq")]
    )


@pytest.mark.parametrize("sql", [None, "", "SELECT 1", "CREATE TABLE apples"])
def test_parse_create_table_rejects(sql):
    with pytest.raises(QuerySyntaxError):
        parse_create_table(sql)


@pytest.mark.parametrize(
    "definition, is_alias",
    [
        ("id integer primary key autoincrement", True),
        ("id INTEGER PRIMARY KEY", True),
        ("id int primary key", False),
        ("id integer", False),
    ],
)
def test_rowid_alias(definition, is_alias):
    creation = parse_create_table(f"CREATE TABLE t ({definition})")
    assert creation.columns[0].is_rowid_alias == is_alias


def test_count(apples_db):
    with Database.open(apples_db) as database:
        assert Query.parse_query("SELECT COUNT(*) FROM apples").execute(database) == [
            [len(APPLES)]
        ]


def test_select_columns(apples_db):
    with Database.open(apples_db) as database:
        rows = Query.parse_query("SELECT name, color FROM apples").execute(database)

    assert rows == [[name, color] for name, color in APPLES]


def test_select_everything(apples_db):
    with Database.open(apples_db) as database:
        rows = Query.parse_query("SELECT * FROM oranges").execute(database)

    assert rows == [[1, "Mandarin", "great for snacking"]]


def test_select_unknown_column(apples_db):
    with Database.open(apples_db) as database:
        with pytest.raises(QuerySyntaxError):
            Query.parse_query("SELECT taste FROM apples").execute(database)


def test_format_rows():
    assert format_rows([[1, "Fuji", None], [2, b"Gala", 2.5]]) == "1|Fuji|\n2|Gala|2.5"
    assert format_rows([]) == ""


@pytest.mark.parametrize(
    "query, expected",
    [
        (
            "SELECT name FROM apples WHERE color = 'Red'",
            SelectStatement("apples", ["name"], ValueFilter("color", "=", "Red")),
        ),
        (
            "SELECT id, name FROM apples where id >= 3;",
            SelectStatement("apples", ["id", "name"], ValueFilter("id", ">=", 3)),
        ),
        (
            "SELECT COUNT(*) FROM apples WHERE name <> 'Kid''s Pick'",
            SelectStatement("apples", ["count(*)"], ValueFilter("name", "<>", "Kid's Pick")),
        ),
        (
            'SELECT name FROM apples WHERE "weight" < 1.5',
            SelectStatement("apples", ["name"], ValueFilter("weight", "<", 1.5)),
        ),
    ],
)
def test_parse_select_where(query, expected):
    assert parse_select(query) == expected


@pytest.mark.parametrize(
    "query",
    [
        "SELECT name FROM apples ORDER BY name",
        "SELECT name FROM apples LIMIT 2",
        "SELECT name FROM apples WHERE color = 'Red' LIMIT 1",
        "SELECT name FROM apples WHERE color = 'Red' ORDER BY name",
        "SELECT color, COUNT(*) FROM apples GROUP BY color",
        "SELECT name FROM apples WHERE color = 'Red' AND id = 2",
        "SELECT name FROM apples WHERE color = Red",
        "SELECT name FROM apples WHERE color LIKE 'R%'",
    ],
)
def test_parse_select_rejects_unsupported_clauses(query):
    with pytest.raises(QuerySyntaxError):
        parse_select(query)


@pytest.mark.parametrize(
    "definition, is_alias",
    [
        ("id INTEGER NOT NULL PRIMARY KEY", True),
        ("id integer constraint pk primary key asc", True),
        ("id integer not null, name text, PRIMARY KEY (id)", True),
        ("id integer, name text, CONSTRAINT pk PRIMARY KEY ([id] DESC)", True),
        ("id integer, name text, PRIMARY KEY (id, name)", False),
        ("id int, name text, PRIMARY KEY (id)", False),
        ("id integer not null", False),
    ],
)
def test_rowid_alias_with_constraints(definition, is_alias):
    creation = parse_create_table(f"CREATE TABLE t ({definition})")
    assert creation.columns[0].is_rowid_alias == is_alias


def test_select_where(apples_db):
    with Database.open(apples_db) as database:
        assert Query.parse_query("SELECT name FROM apples WHERE color = 'Red'").execute(
            database
        ) == [["Fuji"]]
        assert Query.parse_query("SELECT id FROM apples WHERE id > 2").execute(
            database
        ) == [[3], [4]]
        assert Query.parse_query("SELECT name FROM apples WHERE id = 'Fuji'").execute(
            database
        ) == []


def test_count_where(apples_db):
    with Database.open(apples_db) as database:
        query = Query.parse_query("SELECT COUNT(*) FROM apples WHERE Color != 'Red'")
        assert query.execute(database) == [[len(APPLES) - 1]]


def test_select_where_unknown_column(apples_db):
    with Database.open(apples_db) as database:
        with pytest.raises(QuerySyntaxError):
            Query.parse_query("SELECT name FROM apples WHERE taste = 'sweet'").execute(
                database
            )
