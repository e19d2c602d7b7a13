"""
Document template registry.

Every template id maps to a renderer with a single ``render(data)`` entry
point. Template sources live in ``TEMPLATE_SOURCES`` and are compiled by a
sandboxed Jinja2 environment with autoescaping, so user content can never
inject markup.
"""

from typing import Any

import structlog
from jinja2 import DictLoader
from jinja2.sandbox import SandboxedEnvironment

from resumeforge.platform.documents.models import (
    CoverLetterTemplateId,
    DocumentKind,
    RenderedDocument,
    ResumeTemplateId,
    TemplateInfo,
)
from resumeforge.platform.documents.normalization import (
    normalize_cover_letter,
    normalize_resume,
)

logger = structlog.get_logger(__name__)


class UnknownTemplateError(Exception):
    """Requested template id is not registered."""

    status_code = 404

    def __init__(self, template_id: str, kind: DocumentKind):
        super().__init__(f"Unknown {kind.value} template: {template_id}")
        self.template_id = template_id
        self.kind = kind


_RESUME_BASE = """\
<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{{ title }}</title>
<style>
@page { size: A4; margin: 0; }
.page { width: 210mm; min-height: 297mm; box-sizing: border-box; padding: 18mm; }
.avoid-break { break-inside: avoid; page-break-inside: avoid; }
{% block styles %}{% endblock %}
</style>
</head>
<body class="template-{{ template_id }}">
<div class="page">
{% block page %}{% endblock %}
</div>
</body>
</html>
"""

_RESUME_SECTIONS = """\
{% macro section(key, data) %}
{% if key == "summary" and data.summary %}
<section class="summary avoid-break"><h2>Summary</h2><p>{{ data.summary }}</p></section>
{% elif key == "workExperience" and data.workExperience %}
<section class="experience"><h2>Experience</h2>
{% for job in data.workExperience %}
<div class="entry avoid-break">
<h3>{{ job.position }}{% if job.company %}, {{ job.company }}{% endif %}</h3>
<span class="dates">{{ job.dateRange }}</span>
{% if job.description %}<p>{{ job.description }}</p>{% endif %}
{% if job.achievements %}<ul>{% for a in job.achievements %}<li>{{ a }}</li>{% endfor %}</ul>{% endif %}
</div>
{% endfor %}
</section>
{% elif key == "education" and data.education %}
<section class="education"><h2>Education</h2>
{% for edu in data.education %}
<div class="entry avoid-break">
<h3>{{ edu.degree }}{% if edu.fieldOfStudy %} in {{ edu.fieldOfStudy }}{% endif %}</h3>
<span class="institution">{{ edu.institution }}</span>
<span class="dates">{{ edu.dateRange }}</span>
</div>
{% endfor %}
</section>
{% elif key == "skills" and data.skills %}
<section class="skills avoid-break"><h2>Skills</h2><p>{{ data.skills | join(", ") }}</p></section>
{% elif key == "projects" and data.projects %}
<section class="projects"><h2>Projects</h2>
{% for project in data.projects %}
<div class="entry avoid-break">
<h3>{{ project.name }}</h3>
{% if project.url %}<a href="{{ project.url }}">{{ project.displayUrl }}</a>{% endif %}
{% if project.description %}<p>{{ project.description }}</p>{% endif %}
</div>
{% endfor %}
</section>
{% elif key == "certifications" and data.certifications %}
<section class="certifications"><h2>Certifications</h2>
{% for cert in data.certifications %}
<div class="entry avoid-break">{{ cert.name }}{% if cert.issuer %}, {{ cert.issuer }}{% endif %}
<span class="dates">{{ cert.displayDate }}</span></div>
{% endfor %}
</section>
{% elif key == "publications" and data.publications %}
<section class="publications"><h2>Publications</h2>
{% for pub in data.publications %}
<div class="entry avoid-break">{{ pub.title }}{% if pub.publisher %}, {{ pub.publisher }}{% endif %}
<span class="dates">{{ pub.displayDate }}</span></div>
{% endfor %}
</section>
{% endif %}
{% endmacro %}
"""

_RESUME_HEADER = """\
<header>
<h1>{{ data.fullName }}</h1>
{% if data.targetJobTitle %}<p class="title">{{ data.targetJobTitle }}</p>{% endif %}
<p class="contact">{{ data.contactLine }}</p>
</header>
"""

TEMPLATE_SOURCES: dict[str, str] = {
    "resume/base.html": _RESUME_BASE,
    "resume/sections.html": _RESUME_SECTIONS,
    "resume/header.html": _RESUME_HEADER,
    "resume/professional.html": """\
{% extends "resume/base.html" %}
{% block styles %}body { font-family: Georgia, serif; } h2 { border-bottom: 1px solid #333; }{% endblock %}
{% block page %}
{% from "resume/sections.html" import section %}
{% include "resume/header.html" %}
{% for key in data.sectionOrder %}{{ section(key, data) }}{% endfor %}
{% endblock %}
""",
    "resume/elegant-divider.html": """\
{% extends "resume/base.html" %}
{% block styles %}body { font-family: Garamond, serif; } hr.divider { border: 0; border-top: 2px solid #8a6d3b; }{% endblock %}
{% block page %}
{% from "resume/sections.html" import section %}
{% include "resume/header.html" %}
{% for key in data.sectionOrder %}<hr class="divider">{{ section(key, data) }}{% endfor %}
{% endblock %}
""",
    "resume/minimalist-ats.html": """\
{% extends "resume/base.html" %}
{% block styles %}body { font-family: Arial, sans-serif; font-size: 11pt; } a { color: inherit; }{% endblock %}
{% block page %}
{% from "resume/sections.html" import section %}
{% include "resume/header.html" %}
{% for key in data.sectionOrder %}{{ section(key, data) }}{% endfor %}
{% endblock %}
""",
    "resume/modern-sidebar.html": """\
{% extends "resume/base.html" %}
{% block styles %}.layout { display: flex; } aside { width: 32%; background: #f1f5f9; padding: 8mm; } main { flex: 1; padding-left: 8mm; }{% endblock %}
{% block page %}
{% from "resume/sections.html" import section %}
<div class="layout">
<aside>
{% include "resume/header.html" %}
{{ section("skills", data) }}
{{ section("certifications", data) }}
</aside>
<main>
{% for key in data.sectionOrder if key not in ("skills", "certifications") %}{{ section(key, data) }}{% endfor %}
</main>
</div>
{% endblock %}
""",
    "cover-letter/base.html": """\
<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{{ title }}</title>
<style>
@page { size: A4; margin: 0; }
.page { width: 210mm; min-height: 297mm; box-sizing: border-box; padding: 22mm; }
{% block styles %}{% endblock %}
</style>
</head>
<body class="template-{{ template_id }}">
<div class="page">
{% block letter %}
<p class="date">{{ data.displayDate }}</p>
{% if data.recipientName or data.companyName %}
<p class="recipient">{{ data.recipientName }}{% if data.companyName %}<br>{{ data.companyName }}{% endif %}</p>
{% endif %}
<p>Dear {{ data.recipientName or "Hiring Manager" }},</p>
{% for paragraph in data.paragraphs %}<p>{{ paragraph }}</p>{% endfor %}
<p class="closing">{{ data.closing or "Sincerely" }},<br>{{ data.fullName }}</p>
{% endblock %}
</div>
</body>
</html>
""",
    "cover-letter/standard.html": """\
{% extends "cover-letter/base.html" %}
{% block styles %}body { font-family: "Times New Roman", serif; }{% endblock %}
""",
    "cover-letter/modern.html": """\
{% extends "cover-letter/base.html" %}
{% block styles %}body { font-family: Helvetica, sans-serif; } header { border-left: 4px solid #2563eb; padding-left: 4mm; }{% endblock %}
{% block letter %}
<header><h1>{{ data.fullName }}</h1><p>{{ data.contactLine }}</p></header>
{{ super() }}
{% endblock %}
""",
    "cover-letter/professional.html": """\
{% extends "cover-letter/base.html" %}
{% block styles %}body { font-family: Georgia, serif; } header { text-align: center; border-bottom: 1px solid #333; }{% endblock %}
{% block letter %}
<header><h1>{{ data.fullName }}</h1><p>{{ data.contactLine }}</p></header>
{{ super() }}
{% endblock %}
""",
}

TEMPLATE_NAMES: dict[str, str] = {
    ResumeTemplateId.PROFESSIONAL.value: "Professional",
    ResumeTemplateId.ELEGANT_DIVIDER.value: "Elegant Divider",
    ResumeTemplateId.MINIMALIST_ATS.value: "Minimalist ATS",
    ResumeTemplateId.MODERN_SIDEBAR.value: "Modern Sidebar",
}

COVER_LETTER_NAMES: dict[str, str] = {
    CoverLetterTemplateId.STANDARD.value: "Standard",
    CoverLetterTemplateId.MODERN.value: "Modern",
    CoverLetterTemplateId.PROFESSIONAL.value: "Professional",
}


def create_environment() -> SandboxedEnvironment:
    """Sandboxed Jinja2 environment holding every document template."""
    return SandboxedEnvironment(
        loader=DictLoader(TEMPLATE_SOURCES),
        autoescape=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )


_environment = create_environment()


class DocumentRenderer:
    """Renders one template from normalized document data."""

    def __init__(self, template_id: str, kind: DocumentKind, name: str):
        self.template_id = template_id
        self.kind = kind
        self.name = name
        self.template = _environment.get_template(f"{kind.value}/{template_id}.html")

    def normalize(self, data: dict[str, Any]) -> dict[str, Any]:
        if self.kind is DocumentKind.RESUME:
            return normalize_resume(data)
        return normalize_cover_letter(data)

    def title(self, data: dict[str, Any]) -> str:
        name = data.get("fullName") or "Untitled"
        if self.kind is DocumentKind.RESUME:
            return f"{name} - Resume"
        return f"{name} - Cover Letter"

    def render(self, data: dict[str, Any]) -> RenderedDocument:
        normalized = self.normalize(data)
        title = self.title(normalized)
        html = self.template.render(data=normalized, title=title, template_id=self.template_id)
        return RenderedDocument(
            template_id=self.template_id, kind=self.kind, title=title, html=html
        )

    def info(self) -> TemplateInfo:
        return TemplateInfo(id=self.template_id, kind=self.kind, name=self.name)


RESUME_RENDERERS: dict[ResumeTemplateId, DocumentRenderer] = {
    template_id: DocumentRenderer(
        template_id.value, DocumentKind.RESUME, TEMPLATE_NAMES[template_id.value]
    )
    for template_id in ResumeTemplateId
}

COVER_LETTER_RENDERERS: dict[CoverLetterTemplateId, DocumentRenderer] = {
    template_id: DocumentRenderer(
        template_id.value, DocumentKind.COVER_LETTER, COVER_LETTER_NAMES[template_id.value]
    )
    for template_id in CoverLetterTemplateId
}


def get_resume_renderer(template_id: str) -> DocumentRenderer:
    try:
        return RESUME_RENDERERS[ResumeTemplateId(template_id)]
    except ValueError:
        logger.warning("Unknown resume template requested", template_id=template_id)
        raise UnknownTemplateError(template_id, DocumentKind.RESUME) from None


def get_cover_letter_renderer(template_id: str) -> DocumentRenderer:
    try:
        return COVER_LETTER_RENDERERS[CoverLetterTemplateId(template_id)]
    except ValueError:
        logger.warning("Unknown cover letter template requested", template_id=template_id)
        raise UnknownTemplateError(template_id, DocumentKind.COVER_LETTER) from None


def list_templates() -> list[TemplateInfo]:
    return [r.info() for r in RESUME_RENDERERS.values()] + [
        r.info() for r in COVER_LETTER_RENDERERS.values()
    ]
