"""
Spreadsheet import pipeline.

An importer reads the first worksheet of an uploaded .xlsx file, locates its
columns from the header row, then walks the data rows one at a time:

    blank row      -> skipped
    parse / coerce -> RowError recorded, row skipped
    duplicate      -> RowError recorded, row skipped
    persist        -> committed immediately in its own atomic block

Every successfully persisted row produces a progress event, the run ends with
a single result event. All counters live on the importer instance, so two
imports running at the same time never share state.

Subclasses declare `columns` and implement `parse_row`, `find_duplicate` and
`persist`.
"""
import os

from django.conf import settings
from django.db import transaction
from loguru import logger
from openpyxl import load_workbook

from .fields import RowError, row_is_blank


class ImportStructureError(Exception):
    """The file as a whole cannot be imported (unreadable, missing columns)"""


class Column:
    """
    A logical column located by case-insensitive substring match.

    `fragments` are tried in order; a header already claimed by an earlier
    column is never claimed again.
    """

    def __init__(self, key, fragments, required=False, label=None):
        self.key = key
        self.fragments = [f.lower() for f in fragments]
        self.required = required
        self.label = label or fragments[0]

    def __repr__(self):
        return f"Column({self.key!r})"


def progress_event(current, total):
    return {'type': 'progress', 'current': current, 'total': total}


def result_event(imported_count, error_count, errors):
    return {
        'type': 'result',
        'importedCount': imported_count,
        'errorCount': error_count,
        'errors': errors,
    }


def error_event(message):
    return {'type': 'error', 'message': message}


class ImportResult:
    """Per-run counters and error log"""

    def __init__(self, max_reported_errors=10):
        self.max_reported_errors = max_reported_errors
        self.processed = 0
        self.imported_count = 0
        self.error_count = 0
        self.errors = []

    def add_error(self, message):
        self.error_count += 1
        if len(self.errors) < self.max_reported_errors:
            self.errors.append(message)

    def as_event(self):
        return result_event(self.imported_count, self.error_count, list(self.errors))


class SpreadsheetImporter:
    entity = 'rows'
    columns = ()

    def __init__(self, path, user=None, max_reported_errors=None):
        self.path = path
        self.user = user
        if max_reported_errors is None:
            max_reported_errors = getattr(settings, 'IMPORT_MAX_REPORTED_ERRORS', 10)
        self.result = ImportResult(max_reported_errors)
        self.column_index = {}
        self.total = 0
        self._workbook = None
        self._sheet = None
        self._closed = False

    # ──────────────────────────────────────────────────────────────────────────
    # Structure
    # ──────────────────────────────────────────────────────────────────────────

    def open(self):
        """
        Load the workbook and locate the columns.

        Raises ImportStructureError before any row is touched when the file
        cannot be read or a required column is missing.
        """
        try:
            self._workbook = load_workbook(self.path, read_only=True, data_only=True)
            self._sheet = self._workbook.worksheets[0]
            header = next(self._sheet.iter_rows(min_row=1, max_row=1, values_only=True), None)
        except ImportStructureError:
            raise
        except Exception as exc:
            logger.warning(f"Unreadable {self.entity} spreadsheet {self.path}: {exc}")
            raise ImportStructureError("Unable to read the spreadsheet file") from exc

        if header is None or row_is_blank(header):
            raise ImportStructureError("No header row found in the file")

        self.column_index = self.locate_columns(header)
        self.total = sum(
            1 for row in self._sheet.iter_rows(min_row=2, values_only=True)
            if not row_is_blank(row)
        )
        logger.info(
            f"{self.entity} import opened: {self.total} data rows, "
            f"columns {sorted(self.column_index)}"
        )
        return self

    @classmethod
    def locate_columns(cls, header):
        headers = [str(h).strip().lower() if h is not None else '' for h in header]
        claimed = set()
        index = {}

        for column in cls.columns:
            found = None
            for fragment in column.fragments:
                for position, text in enumerate(headers):
                    if position in claimed or not text:
                        continue
                    if fragment in text:
                        found = position
                        break
                if found is not None:
                    break
            if found is not None:
                claimed.add(found)
                index[column.key] = found

        missing = [c.label for c in cls.columns if c.required and c.key not in index]
        if missing:
            raise ImportStructureError(f"Required columns not found: {', '.join(missing)}")
        return index

    def row_values(self, row):
        values = {}
        for column in self.columns:
            position = self.column_index.get(column.key)
            if position is None or position >= len(row):
                values[column.key] = None
            else:
                values[column.key] = row[position]
        return values

    # ──────────────────────────────────────────────────────────────────────────
    # Rows
    # ──────────────────────────────────────────────────────────────────────────

    def parse_row(self, values, row_number):
        """Return a dict ready for `persist` or raise RowError"""
        raise NotImplementedError

    def find_duplicate(self, data):
        """Return an error message when the row duplicates persisted data"""
        return None

    def persist(self, data):
        raise NotImplementedError

    def warn(self, row_number, message):
        """Record a warning-level error; the row is still imported"""
        self.result.add_error(f"Row {row_number}: {message}")

    def import_row(self, row_number, row):
        try:
            data = self.parse_row(self.row_values(row), row_number)
            duplicate = self.find_duplicate(data)
            if duplicate:
                raise RowError(duplicate)
            with transaction.atomic():
                self.persist(data)
        except RowError as exc:
            self.result.add_error(f"Row {row_number}: {exc}")
            return False
        except Exception as exc:
            logger.warning(f"{self.entity} import row {row_number} failed: {exc}")
            self.result.add_error(f"Row {row_number}: {exc}")
            return False

        self.result.imported_count += 1
        return True

    def run(self):
        """
        Generator of import events.

        Yields one progress event per persisted row, then a result event.
        An unexpected failure outside a single row ends the run with an
        error event. The uploaded file is removed when the generator ends.
        """
        if self._sheet is None:
            self.open()

        logger.info(f"{self.entity} import started by {getattr(self.user, 'email', 'system')}")
        try:
            rows = self._sheet.iter_rows(min_row=2, values_only=True)
            for row_number, row in enumerate(rows, start=2):
                if row_is_blank(row):
                    continue
                self.result.processed += 1
                if self.import_row(row_number, row):
                    yield progress_event(self.result.processed, self.total)

            logger.info(
                f"{self.entity} import finished: {self.result.imported_count} imported, "
                f"{self.result.error_count} errors"
            )
            yield self.result.as_event()
        except Exception as exc:
            logger.exception(f"{self.entity} import aborted: {exc}")
            yield error_event(f"Failed to import {self.entity}: {exc}")
        finally:
            self.close()

    def close(self):
        """Release the workbook and delete the uploaded file (idempotent)"""
        if self._closed:
            return
        self._closed = True

        if self._workbook is not None:
            try:
                self._workbook.close()
            except Exception as exc:
                logger.debug(f"Closing workbook failed: {exc}")

        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.error(f"Could not delete uploaded file {self.path}: {exc}")
