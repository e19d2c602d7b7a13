"""
Tests for document data normalization.
"""

import pytest

from resumeforge.platform.documents.normalization import (
    DEFAULT_SECTION_ORDER,
    add_bullet,
    canonical_url,
    contact_line,
    date_range,
    display_url,
    format_display_date,
    normalize_cover_letter,
    normalize_resume,
    truncate_summary,
)

pytestmark = pytest.mark.unit


class TestBullets:
    def test_plain_text_gets_bullet(self):
        assert add_bullet("Led a team of five") == "• Led a team of five"

    def test_whitespace_is_stripped(self):
        assert add_bullet("  Shipped v2  ") == "• Shipped v2"

    @pytest.mark.parametrize("text", ["• Done", "- Done", "* Done", "", "   "])
    def test_existing_marker_or_blank_is_unchanged(self, text):
        assert add_bullet(text) == text


class TestTruncateSummary:
    """Test the fixed summary length."""

    def test_long_summary_is_cut_with_ellipsis(self):
        result = truncate_summary("word " * 100)

        assert len(result) == 300
        assert result.endswith("...")

    def test_cut_ignores_word_boundaries(self):
        assert truncate_summary("abcdefghij", max_chars=8) == "abcde..."

    def test_summary_at_limit_is_kept(self):
        text = "x" * 300
        assert truncate_summary(text) == text

    @pytest.mark.parametrize("value", [None, ""])
    def test_empty(self, value):
        assert truncate_summary(value) == ""


class TestUrls:
    """Test canonical and display URL forms."""

    @pytest.mark.parametrize(
        "url,expected",
        [
            ("linkedin.com/in/jane", "https://linkedin.com/in/jane"),
            ("http://example.com", "http://example.com"),
            ("  https://example.com/  ", "https://example.com/"),
            ("", ""),
            (None, ""),
        ],
    )
    def test_canonical_url(self, url, expected):
        assert canonical_url(url) == expected

    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://www.linkedin.com/in/jane/", "linkedin.com/in/jane"),
            ("http://github.com/jane", "github.com/jane"),
            ("WWW.example.com", "example.com"),
            (None, ""),
        ],
    )
    def test_display_url(self, url, expected):
        assert display_url(url) == expected


class TestDates:
    """Test display dates and ranges."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("2024-01-15", "Jan 2024"),
            ("2024-03", "Mar 2024"),
            ("2024-01-15T10:00:00Z", "Jan 2024"),
            ("2020", "2020"),
            ("sometime", "sometime"),
            ("", ""),
            (None, ""),
        ],
    )
    def test_format_display_date(self, value, expected):
        assert format_display_date(value) == expected

    def test_current_role(self):
        assert date_range("2020-01", None, current=True) == "Jan 2020 - Present"

    def test_closed_range(self):
        assert date_range("2018-06", "2020-01") == "Jun 2018 - Jan 2020"

    def test_one_sided_ranges(self):
        assert date_range("2020-01", "") == "Jan 2020"
        assert date_range(None, "2021-06") == "Jun 2021"
        assert date_range(None, None) == ""


class TestContactLine:
    def test_joins_present_parts(self):
        data = {
            "email": "jane@example.com",
            "phone": "+91 98765 43210",
            "city": "Pune",
            "country": "India",
            "linkedinUrl": "https://www.linkedin.com/in/jane",
        }

        assert contact_line(data) == (
            "jane@example.com | +91 98765 43210 | Pune, India | linkedin.com/in/jane"
        )

    def test_explicit_location_wins(self):
        data = {"email": "jane@example.com", "location": "Remote", "city": "Pune"}

        assert contact_line(data, separator="·") == "jane@example.com · Remote"


class TestNormalizeResume:
    """Test whole-document resume normalization."""

    @pytest.fixture
    def resume(self):
        return {
            "fullName": "Jane Doe",
            "email": "jane@example.com",
            "summary": "s" * 400,
            "linkedinUrl": "linkedin.com/in/jane",
            "workExperience": [
                {
                    "position": "Engineer",
                    "company": "Acme",
                    "startDate": "2020-01",
                    "endDate": None,
                    "current": True,
                    "achievements": ["Built the billing system", "", "- Mentored"],
                },
                None,
            ],
            "projects": [{"name": "Site", "url": "www.jane.dev/"}],
            "skills": ["Python", "", None, "SQL"],
        }

    def test_input_is_not_modified(self, resume):
        original_end = resume["workExperience"][0]["endDate"]

        normalize_resume(resume)

        assert resume["workExperience"][0]["endDate"] is original_end
        assert len(resume["summary"]) == 400

    def test_entries_are_normalized(self, resume):
        result = normalize_resume(resume)

        job = result["workExperience"][0]
        assert len(result["workExperience"]) == 1
        assert job["endDate"] == ""
        assert job["dateRange"] == "Jan 2020 - Present"
        assert job["achievements"] == ["• Built the billing system", "- Mentored"]

        project = result["projects"][0]
        assert project["url"] == "https://www.jane.dev/"
        assert project["displayUrl"] == "jane.dev"

    def test_top_level_fields(self, resume):
        result = normalize_resume(resume)

        assert len(result["summary"]) == 300
        assert result["linkedinUrl"] == "https://linkedin.com/in/jane"
        assert result["linkedinUrlDisplay"] == "linkedin.com/in/jane"
        assert result["skills"] == ["Python", "SQL"]
        assert result["contactLine"] == "jane@example.com | linkedin.com/in/jane"
        assert result["sectionOrder"] == DEFAULT_SECTION_ORDER
        assert result["education"] == []

    def test_empty_section_order_falls_back_to_default(self):
        assert normalize_resume({"sectionOrder": []})["sectionOrder"] == DEFAULT_SECTION_ORDER

    def test_custom_section_order_is_kept(self):
        order = ["skills", "summary"]
        assert normalize_resume({"sectionOrder": order})["sectionOrder"] == order


class TestNormalizeCoverLetter:
    def test_body_is_split_into_paragraphs(self):
        result = normalize_cover_letter(
            {"fullName": "Jane", "date": "2024-05-02", "body": "First.\n\n  Second.\n \nThird."}
        )

        assert result["paragraphs"] == ["First.", "Second.", "Third."]
        assert result["displayDate"] == "May 2024"

    def test_explicit_paragraphs_win(self):
        result = normalize_cover_letter({"body": "ignored", "paragraphs": ["Kept."]})

        assert result["paragraphs"] == ["Kept."]

    def test_null_date(self):
        result = normalize_cover_letter({"date": None})

        assert result["date"] == ""
        assert result["displayDate"] == ""
