"""ErrorCollector bookkeeping."""

from utils.errors import ErrorCollector, ErrorSeverity, ErrorType


def test_collector_queries():
    collector = ErrorCollector()
    collector.add_warning(4, "M19 has no effect in simulation")
    assert not collector.has_errors()
    assert not collector.has_fatal_errors()

    fatal = collector.add_error(2, 0, 3, "Unsupported G-code: G5 on line 2",
                                ErrorType.SYNTAX, ErrorSeverity.FATAL, code=5)
    assert collector.has_errors()
    assert collector.has_fatal_errors()
    assert [e.line_number for e in collector.get_all_errors()] == [2, 4]
    assert collector.get_errors_for_line(4)[0].severity == ErrorSeverity.WARNING
    assert len(collector.get_warnings()) == 1

    collector.clear()
    assert collector.get_all_errors() == []


def test_error_formatting():
    collector = ErrorCollector()
    error = collector.add_error(7, 0, 0, "Bad word", ErrorType.SEMANTIC)
    assert error.line == 7
    assert not error.is_fatal
    assert str(error) == "Line 7: Bad word"
