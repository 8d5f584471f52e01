"""Markdown rendering for synced entries.

Entries are rendered from two user-overridable Jinja2 templates: one for the
metadata block and one applied to each highlight. The layout around them is
fixed.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

import jinja2

from mattersync.api import Annotation, FeedRecord
from mattersync.errors import TemplateError

LAYOUT_TEMPLATE = """
{{metadata}}

## Highlights
{{highlights}}
"""

METADATA_TEMPLATE = """
## Metadata
* URL: [{{url}}]({{url}})
{% if author %}
* Author: {{author}}
{% endif %}
{% if publisher %}
* Publisher: {{publisher}}
{% endif %}
{% if published_date %}
* Published Date: {{published_date}}
{% endif %}
{% if note %}
* Note: {{note}}
{% endif %}
{% if tags %}
* Tags: {% for tag in tags %}#{{tag | replace(' ', '_')}}{% if not loop.last %}, {% endif %}{% endfor %}
{% endif %}
"""

HIGHLIGHT_TEMPLATE = """
* {{text}}
{% if note %}
  * **Note**: {{note}}
{% endif %}
"""

_env = jinja2.Environment(
    autoescape=False,
    trim_blocks=True,
    lstrip_blocks=True,
)


def _format_date(value: Optional[datetime]) -> str:
    if value is None:
        return ""
    return value.astimezone(timezone.utc).strftime("%Y-%m-%d")


def _render(template: str, context: Dict[str, Any]) -> str:
    try:
        return _env.from_string(template).render(**context).strip()
    except jinja2.TemplateError as e:
        raise TemplateError(f"Invalid template: {e}") from e
    except Exception as e:
        raise TemplateError(f"Template failed to render: {e}") from e


def sort_annotations(annotations: Iterable[Annotation]) -> List[Annotation]:
    """Order highlights as they appear in the document."""
    return sorted(annotations, key=lambda a: a.word_start)


class Renderer:
    """Render entries with optional user templates.

    Blank or missing overrides fall back to the built-in templates.
    """

    def __init__(
        self,
        metadata_template: Optional[str] = None,
        highlight_template: Optional[str] = None,
    ) -> None:
        self.metadata_template = (metadata_template or "").strip() or METADATA_TEMPLATE.strip()
        self.highlight_template = (highlight_template or "").strip() or HIGHLIGHT_TEMPLATE.strip()

    def render_metadata(self, record: FeedRecord) -> str:
        return _render(self.metadata_template, {
            "url": record.url,
            "title": record.title,
            "author": record.author,
            "publisher": record.publisher,
            "published_date": _format_date(record.publication_date),
            "note": record.note,
            "tags": record.tags,
        })

    def render_annotation(self, annotation: Annotation) -> str:
        return _render(self.highlight_template, {
            "text": annotation.text,
            "note": annotation.note,
            "created_date": _format_date(annotation.created_date),
        })

    def render_annotations(self, annotations: Iterable[Annotation]) -> str:
        return "\n".join(
            self.render_annotation(a) for a in sort_annotations(annotations)
        )

    def render_entry(self, record: FeedRecord) -> str:
        return _render(LAYOUT_TEMPLATE.strip(), {
            "metadata": self.render_metadata(record),
            "highlights": self.render_annotations(record.annotations),
        })


def check_template(template: str) -> None:
    """Raise TemplateError if the template does not parse."""
    try:
        _env.parse(template)
    except jinja2.TemplateSyntaxError as e:
        raise TemplateError(f"Invalid template (line {e.lineno}): {e.message}") from e
