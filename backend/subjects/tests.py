from io import BytesIO

import openpyxl
from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import SimpleTestCase, TestCase

from accounts.models import Teacher
from .csv_import import (
    QuestionFileError,
    QuestionImportError,
    import_questions,
    missing_columns,
    read_question_file,
    validate_rows,
)
from .difficulty import score_difficulty
from .models import Question, Subject

User = get_user_model()

HEADER = 'question_text,type,difficulty,answers,correct_answer,explanation\n'


class DifficultyScoreTests(SimpleTestCase):
    def test_open_answer_long_text_with_explanation(self):
        self.assertEqual(score_difficulty('open_answer', 'x' * 200, 'Because.'), 9.5)

    def test_true_false_short_text(self):
        self.assertEqual(score_difficulty('true_false', 'Is water wet?'), 3.0)

    def test_length_thresholds(self):
        self.assertEqual(score_difficulty('multiple_choice', 'x' * 75), 5.0)
        self.assertEqual(score_difficulty('multiple_choice', 'x' * 76), 6.0)
        self.assertEqual(score_difficulty('multiple_choice', 'x' * 150), 6.0)
        self.assertEqual(score_difficulty('multiple_choice', 'x' * 151), 7.0)

    def test_blank_explanation_adds_nothing(self):
        self.assertEqual(score_difficulty('multiple_choice', 'Short', '   '), 5.0)

    def test_unknown_type_has_no_offset(self):
        self.assertEqual(score_difficulty('interpretive_dance', 'Short'), 5.0)

    def test_score_always_in_range(self):
        for question_type in list(Question.QuestionType.values) + ['unknown', None]:
            for text in ['', 'x' * 10, 'x' * 100, 'x' * 1000, None]:
                for explanation in [None, '', 'why']:
                    score = score_difficulty(question_type, text, explanation)
                    self.assertGreaterEqual(score, 0.0)
                    self.assertLessEqual(score, 10.0)
                    self.assertEqual(score, round(score, 1))


class SubjectModelTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username='teacher', password='password')
        self.teacher = Teacher.objects.create(user=self.user)

    def test_create_subject(self):
        subject = Subject.objects.create(name='Biology', owner=self.teacher)
        self.assertEqual(str(subject), 'Biology')
        self.assertEqual(subject.owner, self.teacher)

    def test_question_without_difficulty_is_scored(self):
        subject = Subject.objects.create(name='Biology', owner=self.teacher)
        question = Question.objects.create(
            subject=subject,
            question_text='x' * 200,
            type=Question.QuestionType.OPEN_ANSWER,
            correct_answer='mitochondria',
            explanation='The powerhouse of the cell.',
        )
        self.assertEqual(question.difficulty, 9.5)

    def test_explicit_difficulty_is_kept(self):
        subject = Subject.objects.create(name='Biology', owner=self.teacher)
        question = Question.objects.create(
            subject=subject,
            question_text='What is DNA?',
            type=Question.QuestionType.OPEN_ANSWER,
            difficulty=1.5,
            correct_answer='A molecule',
        )
        self.assertEqual(question.difficulty, 1.5)

    def test_deleting_subject_deletes_questions(self):
        subject = Subject.objects.create(name='Biology', owner=self.teacher)
        Question.objects.create(
            subject=subject, question_text='What is RNA?', type='open_answer', correct_answer='x'
        )
        subject.delete()
        self.assertEqual(Question.objects.count(), 0)

    def test_open_ended_flag(self):
        subject = Subject.objects.create(name='Biology', owner=self.teacher)
        open_question = Question(subject=subject, question_text='Explain osmosis', type='open_answer')
        choice_question = Question(subject=subject, question_text='Pick one', type='multiple_choice')
        self.assertTrue(open_question.is_open_ended)
        self.assertFalse(choice_question.is_open_ended)


class QuestionFileReadingTests(SimpleTestCase):
    def test_reads_csv_with_bom(self):
        upload = SimpleUploadedFile(
            'questions.csv',
            ('﻿' + HEADER + 'What is 2+2?,multiple_choice,2,"[""3"",""4""]","""4""",Sum\n').encode('utf-8'),
        )
        headers, rows, _ = read_question_file(upload)
        self.assertEqual(headers[0], 'question_text')
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]['correct_answer'], '"4"')

    def test_reads_semicolon_csv(self):
        content = HEADER.replace(',', ';') + 'What is 2+2?;multiple_choice;2;;4;\n'
        headers, rows, _ = read_question_file(SimpleUploadedFile('q.csv', content.encode('utf-8')))
        self.assertIn('difficulty', headers)
        self.assertEqual(rows[0]['difficulty'], '2')

    def test_skips_blank_rows(self):
        content = HEADER + 'What is 2+2?,multiple_choice,2,,4,\n,,,,,\n'
        _, rows, _ = read_question_file(SimpleUploadedFile('q.csv', content.encode('utf-8')))
        self.assertEqual(len(rows), 1)

    def test_line_numbers_survive_blank_rows(self):
        content = HEADER + 'What is 2+2?,multiple_choice,2,,4,\n,,,,,\nWhat is 3+3?,open_answer,2,,6,\n'
        _, rows, line_numbers = read_question_file(SimpleUploadedFile('q.csv', content.encode('utf-8')))
        self.assertEqual(len(rows), 2)
        self.assertEqual(line_numbers, [2, 4])

        _, errors = validate_rows([rows[0], dict(rows[1], correct_answer='{bad')], line_numbers)
        self.assertEqual([error['row'] for error in errors], [4])

    def test_xlsx_line_numbers_skip_blank_rows(self):
        workbook = openpyxl.Workbook()
        sheet = workbook.active
        sheet.append(['question_text', 'type', 'difficulty', 'answers', 'correct_answer', 'explanation'])
        sheet.append([None, None, None, None, None, None])
        sheet.append(['Is the sky blue?', 'true_false', 1, None, 'true', None])
        buffer = BytesIO()
        workbook.save(buffer)

        _, rows, line_numbers = read_question_file(SimpleUploadedFile('questions.xlsx', buffer.getvalue()))
        self.assertEqual(len(rows), 1)
        self.assertEqual(line_numbers, [3])

    def test_rejects_file_without_question_column(self):
        with self.assertRaises(QuestionFileError):
            read_question_file(SimpleUploadedFile('q.csv', b'name,age\nAda,36\n'))

    def test_rejects_non_utf8(self):
        with self.assertRaises(QuestionFileError):
            read_question_file(SimpleUploadedFile('q.csv', HEADER.encode('utf-16')))

    def test_reads_xlsx(self):
        workbook = openpyxl.Workbook()
        sheet = workbook.active
        sheet.append(['question_text', 'type', 'difficulty', 'answers', 'correct_answer', 'explanation'])
        sheet.append(['Is the sky blue?', 'true_false', 1, None, 'true', None])
        buffer = BytesIO()
        workbook.save(buffer)
        upload = SimpleUploadedFile('questions.xlsx', buffer.getvalue())

        headers, rows, _ = read_question_file(upload)
        self.assertEqual(headers[:2], ['question_text', 'type'])
        self.assertEqual(rows[0]['difficulty'], 1)
        self.assertEqual(rows[0]['answers'], '')

        cleaned, errors = validate_rows(rows)
        self.assertEqual(errors, [])
        self.assertIs(cleaned[0]['correct_answer'], True)

    def test_missing_columns(self):
        self.assertEqual(missing_columns(['Question_Text ', 'type']), ['difficulty', 'correct_answer'])


class QuestionRowValidationTests(SimpleTestCase):
    def row(self, **overrides):
        row = {
            'question_text': 'What is the capital of France?',
            'type': 'multiple_choice',
            'difficulty': '3',
            'answers': '["Paris", "Rome"]',
            'correct_answer': '"Paris"',
            'explanation': '',
        }
        row.update(overrides)
        return row

    def test_valid_row_is_decoded(self):
        cleaned, errors = validate_rows([self.row()])
        self.assertEqual(errors, [])
        self.assertEqual(cleaned[0]['answers'], ['Paris', 'Rome'])
        self.assertEqual(cleaned[0]['correct_answer'], 'Paris')
        self.assertEqual(cleaned[0]['difficulty'], 3.0)

    def test_headers_are_case_insensitive(self):
        row = {key.upper(): value for key, value in self.row().items()}
        _, errors = validate_rows([row])
        self.assertEqual(errors, [])

    def test_row_numbers_start_after_header(self):
        _, errors = validate_rows([self.row(), self.row(question_text='Hm')])
        self.assertEqual(len(errors), 1)
        self.assertEqual(errors[0]['row'], 3)
        self.assertIn('question_text', errors[0]['errors'])

    def test_bad_json_is_reported(self):
        _, errors = validate_rows([self.row(correct_answer='{not json')])
        self.assertEqual(
            [str(message) for message in errors[0]['errors']['non_field_errors']],
            ['Invalid JSON in answers or correct_answer column.'],
        )

    def test_type_and_difficulty_bounds(self):
        _, errors = validate_rows([self.row(type='whiteboard', difficulty='11')])
        self.assertIn('type', errors[0]['errors'])
        self.assertIn('difficulty', errors[0]['errors'])

    def test_missing_answers_is_allowed(self):
        cleaned, errors = validate_rows([self.row(answers='', type='open_answer', correct_answer='"Paris"')])
        self.assertEqual(errors, [])
        self.assertIsNone(cleaned[0]['answers'])


class QuestionImportTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username='teacher', password='password')
        self.teacher = Teacher.objects.create(user=self.user)
        self.subject = Subject.objects.create(name='Geography', owner=self.teacher)

    def make_rows(self, count):
        return [
            {
                'question_text': f'Question number {index}?',
                'type': 'open_answer',
                'difficulty': '4',
                'answers': '',
                'correct_answer': f'"answer {index}"',
                'explanation': '',
            }
            for index in range(count)
        ]

    def test_imports_every_row(self):
        questions = import_questions(self.subject, self.user, self.make_rows(3))
        self.assertEqual(len(questions), 3)
        stored = Question.objects.filter(subject=self.subject)
        self.assertEqual(stored.count(), 3)
        for question in stored:
            self.assertEqual(question.metadata, {'source': 'csv_upload'})
            self.assertEqual(question.author, self.user)

    def test_one_bad_row_rejects_batch(self):
        rows = self.make_rows(3)
        rows[1]['correct_answer'] = 'not json'
        with self.assertRaises(QuestionImportError) as ctx:
            import_questions(self.subject, self.user, rows)
        self.assertEqual(len(ctx.exception.errors), 1)
        self.assertEqual(ctx.exception.errors[0]['row'], 3)
        self.assertEqual(Question.objects.count(), 0)

    def test_empty_rows_rejected(self):
        with self.assertRaises(QuestionFileError):
            import_questions(self.subject, self.user, [])
