"""
===========================================
Data Manipulation Language (DML) Utilities.
===========================================

This module builds the INSERT, UPDATE and DELETE statements behind the
query builder's write operations. Every statement uses ``?`` positional
placeholders; the returned text is handed to an Executor together with the
values in the documented order.

Table names, column names and WHERE bodies are inserted verbatim, exactly
like the query builder's read fragments.

Functions:
- insert_sql: INSERT of one row
- update_sql: UPDATE with SET placeholders followed by the WHERE body
- delete_sql: DELETE with optional WHERE body

Usage:
    from sql.dml import insert_sql, update_sql

    insert_sql('users', ['name', 'age'])
    # INSERT INTO users (name, age) VALUES (?, ?)

    update_sql('users', ['name'], 'id = ?')
    # UPDATE users SET name = ? WHERE id = ?
    # values: [new_name, user_id]
"""

from typing import List, Optional


def insert_sql(table: str, columns: List[str], returning: Optional[str] = None) -> str:
    """
    Generate a single-row INSERT statement.

    Args:
        table: Table name
        columns: Column names, in the order their values will be bound
        returning: Column to return after insert, for backends without a
            usable lastrowid

    Returns:
        SQL INSERT statement with one placeholder per column

    Raises:
        ValueError: If no columns are given
    """
    if not columns:
        raise ValueError(f"Cannot insert into {table} without any columns")

    column_list = ", ".join(columns)
    placeholder_list = ", ".join("?" for _ in columns)
    sql = f"INSERT INTO {table} ({column_list}) VALUES ({placeholder_list})"

    if returning:
        sql += f" RETURNING {returning}"

    return sql


def update_sql(table: str, columns: List[str], where: str = '') -> str:
    """
    Generate an UPDATE statement.

    SET placeholders come first, so bind the new values followed by the
    WHERE parameters.

    Args:
        table: Table name
        columns: Columns to set
        where: Raw WHERE body, omitted when empty

    Returns:
        SQL UPDATE statement

    Raises:
        ValueError: If no columns are given
    """
    if not columns:
        raise ValueError(f"Cannot update {table} without any columns")

    set_clause = ", ".join(f"{col} = ?" for col in columns)
    sql = f"UPDATE {table} SET {set_clause}"

    if where:
        sql += f" WHERE {where}"

    return sql


def delete_sql(table: str, where: str = '') -> str:
    """
    Generate a DELETE statement.

    Args:
        table: Table name
        where: Raw WHERE body; when empty every row is deleted

    Returns:
        SQL DELETE statement
    """
    sql = f"DELETE FROM {table}"

    if where:
        sql += f" WHERE {where}"

    return sql
