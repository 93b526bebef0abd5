import sqlite3

import pytest

from builders import APPLES, APPLES_SQL


@pytest.fixture
def write_image(tmp_path):
    """Writes raw database bytes to a file and returns its path"""

    def write(image: bytes, name: str = "image.db") -> str:
        path = tmp_path / name
        path.write_bytes(image)
        return str(path)

    return write


@pytest.fixture
def apples_db(tmp_path):
    path = tmp_path / "sample.db"
    connection = sqlite3.connect(str(path))
    connection.execute(APPLES_SQL)
    connection.execute("CREATE TABLE oranges (id integer primary key, name text, description text)")
    connection.executemany("INSERT INTO apples (name, color) VALUES (?, ?)", APPLES)
    connection.execute(
        "INSERT INTO oranges (name, description) VALUES ('Mandarin', 'great for snacking')"
    )
    connection.commit()
    connection.close()
    return str(path)


@pytest.fixture
def samples_db(tmp_path):
    """One row using every serial type sqlite3 produces for small values, except 3 and 5"""
    path = tmp_path / "samples.db"
    connection = sqlite3.connect(str(path))
    connection.execute(
        "CREATE TABLE samples (id integer primary key, label text, zero integer, "
        "one integer, small integer, medium integer, large integer, huge integer, "
        "ratio real, data blob, missing text)"
    )
    connection.execute(
        "INSERT INTO samples VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
        (7, "maçã", 0, 1, -5, 1000, 2_000_000_000, 2**50, 2.5, b"\x00\x01\xff", None),
    )
    connection.execute("CREATE TABLE wide (id integer primary key, amount integer)")
    # 100000 needs a 24 bit integer
    connection.execute("INSERT INTO wide (amount) VALUES (100000)")
    connection.execute("CREATE VIEW labels AS SELECT label FROM samples")
    connection.execute("CREATE TABLE tags (name text unique)")
    connection.commit()
    connection.close()
    return str(path)
