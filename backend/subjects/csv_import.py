"""Reading and validating question uploads.

A file is accepted as CSV (comma, semicolon or tab separated, optional UTF-8
BOM) or as an ``.xlsx`` workbook whose first sheet has the same columns.
Validation is all-or-nothing: one bad row rejects the whole upload.
"""
import csv
import logging
import zipfile
from io import StringIO

import openpyxl
from django.db import transaction
from openpyxl.utils.exceptions import InvalidFileException

from .models import Question
from .serializers import QuestionRowSerializer

logger = logging.getLogger(__name__)

COLUMNS = ('question_text', 'type', 'difficulty', 'answers', 'correct_answer', 'explanation')
REQUIRED_COLUMNS = ('question_text', 'type', 'difficulty', 'correct_answer')
PREVIEW_ROWS = 5
FALLBACK_DELIMITERS = (',', ';', '\t')


class QuestionFileError(Exception):
    """The upload could not be read as a table of questions."""


class QuestionImportError(Exception):
    """One or more rows failed validation; ``errors`` holds the per-row report."""

    def __init__(self, errors):
        super().__init__(f'{len(errors)} row(s) failed validation.')
        self.errors = errors


def _header_map(headers):
    return {str(h).strip().lower(): h for h in headers if h is not None}


def _has_required_columns(header_map) -> bool:
    return 'question_text' in header_map


def _csv_reader(content, **kwargs):
    try:
        reader = csv.DictReader(StringIO(content), **kwargs)
        if not reader.fieldnames:
            return None
        if not _has_required_columns(_header_map(reader.fieldnames)):
            return None
        return reader
    except csv.Error:
        return None


def read_csv(raw: bytes):
    try:
        content = raw.decode('utf-8-sig')
    except UnicodeDecodeError as exc:
        raise QuestionFileError('File must be UTF-8 encoded.') from exc

    reader = None
    # Only the delimiter is taken from the sniffer; JSON cells need standard quoting.
    try:
        header_line = content.split('\n', 1)[0]
        dialect = csv.Sniffer().sniff(header_line, delimiters=''.join(FALLBACK_DELIMITERS))
        reader = _csv_reader(content, delimiter=dialect.delimiter)
    except csv.Error:
        pass

    if reader is None:
        for delimiter in FALLBACK_DELIMITERS:
            reader = _csv_reader(content, delimiter=delimiter)
            if reader is not None:
                break

    if reader is None:
        raise QuestionFileError('CSV must have a "question_text" column. Could not detect a valid CSV format.')

    rows = []
    line_numbers = []
    try:
        for row in reader:
            rows.append(dict(row))
            line_numbers.append(reader.line_num)
    except csv.Error as exc:
        raise QuestionFileError(f'Malformed CSV: {exc}') from exc
    return list(reader.fieldnames), rows, line_numbers


def read_xlsx(file_obj):
    try:
        workbook = openpyxl.load_workbook(file_obj, read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError) as exc:
        raise QuestionFileError('Could not open the spreadsheet.') from exc

    try:
        values = list(workbook.active.iter_rows(values_only=True))
    finally:
        workbook.close()

    if not values:
        raise QuestionFileError('Empty file.')
    headers = ['' if cell is None else str(cell) for cell in values[0]]
    if not _has_required_columns(_header_map(headers)):
        raise QuestionFileError('Spreadsheet must have a "question_text" column in its first row.')

    rows = []
    line_numbers = []
    for line, record in enumerate(values[1:], start=2):
        row = {}
        for header, cell in zip(headers, record):
            if header:
                row[header] = '' if cell is None else cell
        rows.append(row)
        line_numbers.append(line)
    return headers, rows, line_numbers


def read_question_file(file_obj):
    """Return ``(headers, rows, line_numbers)``.

    Rows are dicts keyed by the file's own headers. Blank rows are dropped;
    ``line_numbers`` keeps the file line each remaining row came from.
    """
    name = (getattr(file_obj, 'name', '') or '').lower()
    if name.endswith('.xlsx'):
        headers, rows, line_numbers = read_xlsx(file_obj)
    else:
        headers, rows, line_numbers = read_csv(file_obj.read())
    kept = [(row, line) for row, line in zip(rows, line_numbers) if not _is_blank(row)]
    return headers, [row for row, _ in kept], [line for _, line in kept]


def _is_blank(row) -> bool:
    return all(value is None or str(value).strip() == '' for value in row.values())


def normalize_row(row):
    """Map a raw row onto the known column names, ignoring extra columns."""
    normalized = {}
    for key, value in row.items():
        if key is None:
            continue
        column = str(key).strip().lower()
        if column in COLUMNS:
            normalized[column] = value
    return normalized


def validate_rows(rows, line_numbers=None):
    if line_numbers is None:
        # Data starts on line 2, after the header.
        line_numbers = range(2, len(rows) + 2)
    cleaned = []
    errors = []
    for row, line in zip(rows, line_numbers):
        serializer = QuestionRowSerializer(data=normalize_row(row))
        if serializer.is_valid():
            cleaned.append(serializer.validated_data)
        else:
            errors.append({'row': line, 'errors': serializer.errors})
    return cleaned, errors


def missing_columns(headers):
    header_map = _header_map(headers)
    return [column for column in REQUIRED_COLUMNS if column not in header_map]


def import_questions(subject, author, rows, line_numbers=None):
    """Validate every row and insert them all, or raise and insert nothing."""
    if not rows:
        raise QuestionFileError('The file contains no question rows.')

    cleaned, errors = validate_rows(rows, line_numbers)
    if errors:
        raise QuestionImportError(errors)

    with transaction.atomic():
        questions = Question.objects.bulk_create([
            Question(
                subject=subject,
                author=author,
                question_text=data['question_text'],
                type=data['type'],
                difficulty=data['difficulty'],
                answers=data['answers'],
                correct_answer=data['correct_answer'],
                explanation=data['explanation'],
                metadata={'source': Question.Source.CSV_UPLOAD.value},
            )
            for data in cleaned
        ])
    logger.info('Imported %d questions into subject %s', len(questions), subject.pk)
    return questions
