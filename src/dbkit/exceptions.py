"""
Database-specific exception classes.
"""
import sqlite3

import psycopg
import pymysql
import sqlalchemy.exc


class DatabaseError(Exception):
    """Base class for all dbkit errors.
    """


class ConnectionFailure(DatabaseError):
    """Error establishing or maintaining database connection.
    """


class QueryError(DatabaseError):
    """Error in query syntax or execution.
    """


class NoRowsError(QueryError):
    """A single-row query returned no rows.
    """


class TypeConversionError(DatabaseError):
    """Error converting a Python value into SQL text.
    """


class ValidationError(DatabaseError):
    """Error in statement configuration or input validation.
    """


class UnsafeStatementError(ValidationError):
    """UPDATE or DELETE without a WHERE clause while the statement is not marked unsafe.
    """


DbConnectionError = (
    psycopg.OperationalError,
    psycopg.InterfaceError,
    pymysql.err.OperationalError,
    pymysql.err.InterfaceError,
    sqlite3.OperationalError,
    sqlite3.InterfaceError,
    ConnectionFailure,
    )

IntegrityError = (
    psycopg.IntegrityError,
    pymysql.err.IntegrityError,
    sqlite3.IntegrityError,
    )

ProgrammingError = (
    psycopg.ProgrammingError,
    psycopg.DatabaseError,
    pymysql.err.ProgrammingError,
    pymysql.err.DatabaseError,
    sqlite3.ProgrammingError,
    sqlite3.DatabaseError,
    QueryError,
    )

OperationalError = (
    psycopg.OperationalError,
    pymysql.err.OperationalError,
    sqlite3.OperationalError,
    )

# Everything a driver (or SQLAlchemy on its behalf) raises while executing.
DriverError = (
    psycopg.Error,
    pymysql.err.Error,
    sqlite3.Error,
    sqlalchemy.exc.SQLAlchemyError,
    )
