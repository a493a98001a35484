from __future__ import annotations

import io
import json
import logging
import unittest
from decimal import Decimal

from erpmini.errors import ConflictError
from erpmini.logging_config import StructuredFormatter, configure_logging, get_logger, reset_logging


class LoggingConfigTests(unittest.TestCase):
    def setUp(self) -> None:
        reset_logging()
        self.stream = io.StringIO()
        configure_logging(level='DEBUG', stream=self.stream)

    def tearDown(self) -> None:
        reset_logging()

    def _lines(self) -> list[dict]:
        return [json.loads(line) for line in self.stream.getvalue().splitlines() if line]

    def test_get_logger_is_namespaced(self) -> None:
        self.assertEqual(get_logger('orders').name, 'erpmini.orders')
        self.assertEqual(get_logger('erpmini.services.order_service').name, 'erpmini.services.order_service')

    def test_extra_fields_are_serialised(self) -> None:
        get_logger('orders').info('order created', extra={'order_id': 7, 'total_amount': Decimal('100.50')})

        (line,) = self._lines()
        self.assertEqual(line['message'], 'order created')
        self.assertEqual(line['level'], 'INFO')
        self.assertEqual(line['logger'], 'erpmini.orders')
        self.assertEqual(line['order_id'], 7)
        self.assertEqual(line['total_amount'], '100.50')

    def test_exception_code_is_included(self) -> None:
        try:
            raise ConflictError('duplicate memo number not allowed')
        except ConflictError:
            get_logger('orders').exception('rejected')

        (line,) = self._lines()
        self.assertEqual(line['exc_type'], 'ConflictError')
        self.assertEqual(line['exc_code'], ConflictError.code)
        self.assertIn('Traceback', line['traceback'])

    def test_configure_is_idempotent(self) -> None:
        configure_logging(stream=io.StringIO())
        self.assertEqual(len(logging.getLogger('erpmini').handlers), 1)

    def test_formatter_output_is_single_line(self) -> None:
        record = logging.LogRecord('erpmini.x', logging.WARNING, __file__, 1, 'multi\nline', (), None)
        self.assertEqual(len(StructuredFormatter().format(record).splitlines()), 1)


if __name__ == '__main__':
    unittest.main()
