from converter.domain.age_distribution import (
    AGE_BUCKETS,
    ages_from_records,
    calculate_age_distribution,
    format_age_distribution,
    format_percentage,
)


def test_bucket_boundaries():
    report = calculate_age_distribution([0, 19, 20, 39, 40, 59, 60, 99])
    assert [g.count for g in report.groups] == [2, 2, 2, 2]
    assert report.total == 8


def test_every_age_lands_in_exactly_one_bucket():
    for age in range(0, 130):
        assert sum(1 for bucket in AGE_BUCKETS if bucket.contains(age)) == 1


def test_percentages_are_two_decimal_strings():
    report = calculate_age_distribution([35, 17, 41])
    assert report.to_dict() == {
        "total": 3,
        "distribution": [
            {"age_group": "< 20", "count": 1, "percentage": "33.33"},
            {"age_group": "20 to 40", "count": 1, "percentage": "33.33"},
            {"age_group": "40 to 60", "count": 1, "percentage": "33.33"},
            {"age_group": "> 60", "count": 0, "percentage": "0.00"},
        ],
    }


def test_empty_population_reports_zero_everywhere():
    report = calculate_age_distribution([])
    assert report.total == 0
    assert [g.percentage for g in report.groups] == ["0", "0", "0", "0"]
    assert [g.age_group for g in report.groups] == ["< 20", "20 to 40", "40 to 60", "> 60"]


def test_format_percentage():
    assert format_percentage(1, 4) == "25.00"
    assert format_percentage(2, 3) == "66.67"
    assert format_percentage(0, 0) == "0"


def test_ages_from_records_uses_lenient_integer_parsing():
    records = [{"age": "30"}, {"age": "n/a"}, {"other": "1"}, {"age": " 61yrs"}]
    assert ages_from_records(records) == [30, 0, 0, 61]


def test_format_age_distribution_table():
    text = format_age_distribution(calculate_age_distribution([10, 70]))
    lines = text.splitlines()
    assert lines[0] == "=== Age Distribution Report ==="
    assert "< 20\t\t50.00" in lines
    assert "> 60\t\t50.00" in lines
    assert "Total users: 2" in lines
