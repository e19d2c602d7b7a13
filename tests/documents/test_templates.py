"""
Tests for the document template registry and renderers.
"""

import pytest

from resumeforge.platform.documents.models import (
    CoverLetterTemplateId,
    DocumentKind,
    ResumeTemplateId,
)
from resumeforge.platform.documents.templates import (
    UnknownTemplateError,
    get_cover_letter_renderer,
    get_resume_renderer,
    list_templates,
)

pytestmark = pytest.mark.unit


@pytest.fixture
def resume_data():
    return {
        "fullName": "Jane Doe",
        "targetJobTitle": "Backend Engineer",
        "email": "jane@example.com",
        "summary": "Builds reliable billing systems.",
        "workExperience": [
            {
                "position": "Senior Engineer",
                "company": "Acme",
                "startDate": "2021-04",
                "current": True,
                "achievements": ["Cut invoice errors to zero"],
            }
        ],
        "education": [
            {
                "degree": "B.Tech",
                "institution": "IIT Bombay",
                "startDate": "2013",
                "endDate": "2017",
            }
        ],
        "skills": ["Python", "PostgreSQL"],
        "certifications": [{"name": "AWS SAA", "date": "2022-08"}],
    }


class TestRegistry:
    """Test template lookup."""

    def test_list_templates(self):
        templates = list_templates()

        assert len(templates) == 7
        resume_ids = [t.id for t in templates if t.kind is DocumentKind.RESUME]
        letter_ids = [t.id for t in templates if t.kind is DocumentKind.COVER_LETTER]
        assert resume_ids == [t.value for t in ResumeTemplateId]
        assert letter_ids == [t.value for t in CoverLetterTemplateId]

    def test_unknown_resume_template(self):
        with pytest.raises(UnknownTemplateError) as exc_info:
            get_resume_renderer("neon-glow")

        assert exc_info.value.status_code == 404
        assert exc_info.value.kind is DocumentKind.RESUME
        assert "neon-glow" in str(exc_info.value)

    def test_cover_letter_ids_are_separate(self):
        with pytest.raises(UnknownTemplateError):
            get_cover_letter_renderer("modern-sidebar")


class TestResumeRendering:
    """Test resume rendering through every template."""

    @pytest.mark.parametrize("template_id", [t.value for t in ResumeTemplateId])
    def test_every_template_renders(self, template_id, resume_data):
        document = get_resume_renderer(template_id).render(resume_data)

        assert document.template_id == template_id
        assert document.kind is DocumentKind.RESUME
        assert document.title == "Jane Doe - Resume"
        assert "<title>Jane Doe - Resume</title>" in document.html
        assert "Senior Engineer" in document.html
        assert "Apr 2021 - Present" in document.html
        assert "• Cut invoice errors to zero" in document.html
        assert "Python, PostgreSQL" in document.html

    def test_user_content_is_escaped(self, resume_data):
        resume_data["summary"] = "<script>alert('x')</script>"

        html = get_resume_renderer("professional").render(resume_data).html

        assert "<script>" not in html
        assert "&lt;script&gt;" in html

    def test_section_order_is_respected(self, resume_data):
        resume_data["sectionOrder"] = ["skills", "summary"]

        html = get_resume_renderer("minimalist-ats").render(resume_data).html

        assert html.index("<h2>Skills</h2>") < html.index("<h2>Summary</h2>")
        assert "<h2>Experience</h2>" not in html

    def test_unsplittable_entries_are_marked(self, resume_data):
        html = get_resume_renderer("professional").render(resume_data).html

        assert 'class="entry avoid-break"' in html

    def test_missing_name(self):
        document = get_resume_renderer("professional").render({})

        assert document.title == "Untitled - Resume"


class TestCoverLetterRendering:
    """Test cover letter rendering."""

    @pytest.mark.parametrize("template_id", [t.value for t in CoverLetterTemplateId])
    def test_every_template_renders(self, template_id):
        document = get_cover_letter_renderer(template_id).render(
            {"fullName": "Jane Doe", "date": "2024-05-02", "body": "Para one.\n\nPara two."}
        )

        assert document.title == "Jane Doe - Cover Letter"
        assert "Dear Hiring Manager," in document.html
        assert "<p>Para one.</p>" in document.html
        assert "<p>Para two.</p>" in document.html
        assert "May 2024" in document.html

    def test_header_templates_include_contact_line(self):
        html = get_cover_letter_renderer("modern").render(
            {"fullName": "Jane Doe", "email": "jane@example.com", "recipientName": "Sam"}
        ).html

        assert "<h1>Jane Doe</h1>" in html
        assert "jane@example.com" in html
        assert "Dear Sam," in html
