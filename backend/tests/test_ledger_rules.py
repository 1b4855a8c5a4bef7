"""Ledger pure rule tests: debt, dashboard, attention list"""

import pytest

from app.schemas import AttentionReason
from app.services.ledger import (
    can_consume_lesson,
    compute_attention_list,
    compute_dashboard,
    format_amount,
    remaining_debt,
)


class TestRemainingDebt:
    """remaining_debt() tests"""

    def test_fee_minus_balance(self, make_student) -> None:
        assert remaining_debt(make_student(total_fee=1000, balance=250)) == 750

    def test_never_negative(self, make_student) -> None:
        """Overpayment is not a negative debt"""
        assert remaining_debt(make_student(total_fee=500, balance=800)) == 0

    def test_missing_fee_is_zero(self, make_student) -> None:
        assert remaining_debt(make_student(total_fee=None, balance=300)) == 0

    def test_missing_balance_counts_as_zero(self, make_student) -> None:
        assert remaining_debt(make_student(total_fee=400, balance=None)) == 400


class TestCanConsumeLesson:
    """can_consume_lesson() tests"""

    @pytest.mark.parametrize("remaining, expected", [(3, True), (1, True), (0, False), (-2, False)])
    def test_positive_remaining_only(self, make_student, remaining, expected) -> None:
        assert can_consume_lesson(make_student(remaining_lessons=remaining)) is expected


class TestComputeDashboard:
    """compute_dashboard() tests"""

    def test_empty_list(self) -> None:
        """No students: zeros, no division by zero"""
        stats = compute_dashboard([])

        assert stats.total_students == 0
        assert stats.total_revenue == 0
        assert stats.avg_remaining_lessons == 0

    def test_totals_and_average(self, make_student) -> None:
        students = [
            make_student(remaining_lessons=10, balance=500),
            make_student(remaining_lessons=3, balance=1200),
            make_student(remaining_lessons=0, balance=0),
        ]

        stats = compute_dashboard(students)

        assert stats.total_students == 3
        assert stats.total_revenue == 1700
        # 13 / 3 = 4.333...
        assert stats.avg_remaining_lessons == 4.3

    def test_average_rounds_to_one_decimal(self, make_student) -> None:
        students = [make_student(remaining_lessons=n) for n in (1, 2, 2)]
        # 5 / 3 = 1.666...
        assert compute_dashboard(students).avg_remaining_lessons == 1.7

    def test_revenue_is_payments_not_debt(self, make_student) -> None:
        stats = compute_dashboard([make_student(total_fee=2000, balance=500)])
        assert stats.total_revenue == 500

    def test_negative_remaining_included_in_average(self, make_student) -> None:
        students = [make_student(remaining_lessons=-1), make_student(remaining_lessons=4)]
        assert compute_dashboard(students).avg_remaining_lessons == 1.5

    def test_inexact_half_rounds_on_binary_value(self, make_student) -> None:
        """29 / 20 is stored as 1.4499..., so it rounds down"""
        students = [make_student(remaining_lessons=2) for _ in range(9)]
        students += [make_student(remaining_lessons=1) for _ in range(11)]

        assert compute_dashboard(students).avg_remaining_lessons == 1.4

    def test_exact_half_rounds_up(self, make_student) -> None:
        students = [make_student(remaining_lessons=n) for n in (1, 0, 0, 0)]
        # 1 / 4 = 0.25
        assert compute_dashboard(students).avg_remaining_lessons == 0.3


class TestComputeAttentionList:
    """compute_attention_list() tests"""

    def test_package_finished(self, make_student) -> None:
        items = compute_attention_list([make_student(remaining_lessons=0)])

        assert len(items) == 1
        assert items[0].reason == AttentionReason.PACKAGE_FINISHED
        assert items[0].priority == 1
        assert items[0].message == "Package fully finished"

    def test_finished_takes_precedence_over_debt(self, make_student) -> None:
        """remaining 0 and debt > 0 -> package finished, never in debt"""
        items = compute_attention_list([make_student(remaining_lessons=0, total_fee=1000, balance=0)])

        assert len(items) == 1
        assert items[0].reason == AttentionReason.PACKAGE_FINISHED

    def test_in_debt(self, make_student) -> None:
        items = compute_attention_list([make_student(remaining_lessons=8, total_fee=1000, balance=250)])

        assert items[0].reason == AttentionReason.IN_DEBT
        assert items[0].priority == 1
        assert items[0].message == "750 TRY owed"

    def test_debt_takes_precedence_over_low_lessons(self, make_student) -> None:
        items = compute_attention_list([make_student(remaining_lessons=1, total_fee=100, balance=0)])
        assert items[0].reason == AttentionReason.IN_DEBT

    @pytest.mark.parametrize("remaining, message", [(2, "Only 2 lessons left"), (1, "Only 1 lesson left")])
    def test_running_low(self, make_student, remaining, message) -> None:
        items = compute_attention_list([make_student(remaining_lessons=remaining)])

        assert items[0].reason == AttentionReason.LESSONS_RUNNING_LOW
        assert items[0].priority == 2
        assert items[0].message == message

    def test_healthy_student_has_no_item(self, make_student) -> None:
        assert compute_attention_list([make_student(remaining_lessons=3, total_fee=500, balance=500)]) == []

    def test_at_most_one_item_per_student(self, make_student) -> None:
        students = [
            make_student(name="A", remaining_lessons=0, total_fee=900),
            make_student(name="B", remaining_lessons=1, total_fee=900),
            make_student(name="C", remaining_lessons=2),
            make_student(name="D", remaining_lessons=9),
        ]

        items = compute_attention_list(students)

        ids = [item.student.id for item in items]
        assert len(ids) == len(set(ids)) == 3

    def test_same_priority_sorted_by_name(self, make_student) -> None:
        zeynep = make_student(name="Zeynep", remaining_lessons=0)
        ayse = make_student(name="Ayşe", remaining_lessons=0)

        items = compute_attention_list([zeynep, ayse])

        assert [item.student.name for item in items] == ["Ayşe", "Zeynep"]

    def test_priority_before_name(self, make_student) -> None:
        ayse = make_student(name="Ayşe", remaining_lessons=2)
        cem = make_student(name="Cem", remaining_lessons=0)

        items = compute_attention_list([ayse, cem])

        assert [item.student.name for item in items] == ["Cem", "Ayşe"]

    def test_turkish_collation_in_order(self, make_student) -> None:
        """Ç sorts after C and before D, not after Z"""
        students = [
            make_student(name="Deniz", remaining_lessons=0),
            make_student(name="Çağla", remaining_lessons=0),
            make_student(name="Cem", remaining_lessons=0),
            make_student(name="Zehra", remaining_lessons=0),
        ]

        names = [item.student.name for item in compute_attention_list(students)]

        assert names == ["Cem", "Çağla", "Deniz", "Zehra"]


class TestFormatAmount:
    """format_amount() tests"""

    def test_whole_amount(self) -> None:
        assert format_amount(1000) == "1,000"
        assert format_amount(250.0) == "250"

    def test_fractional_amount(self) -> None:
        assert format_amount(1250.5) == "1,250.50"
