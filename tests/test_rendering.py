"""Tests for markdown rendering of entries and highlights."""

from datetime import datetime, timezone

import pytest


def _annotation(text, word_start=0, note=None, created=None):
    from mattersync.api import Annotation

    return Annotation(text=text, note=note, created_date=created, word_start=word_start)


def _record(**kwargs):
    from mattersync.api import FeedRecord

    fields = dict(id="1", title="Title", url="https://example.com/a")
    fields.update(kwargs)
    return FeedRecord(**fields)


class TestMetadata:
    def test_full_metadata(self):
        from mattersync.rendering import Renderer

        record = _record(
            author="Ada Lovelace",
            publisher="The Journal",
            publication_date=datetime(2023, 5, 6, 14, 0, tzinfo=timezone.utc),
            note="Worth rereading",
            tags=["deep learning", "ai"],
        )
        assert Renderer().render_metadata(record) == (
            "## Metadata\n"
            "* URL: [https://example.com/a](https://example.com/a)\n"
            "* Author: Ada Lovelace\n"
            "* Publisher: The Journal\n"
            "* Published Date: 2023-05-06\n"
            "* Note: Worth rereading\n"
            "* Tags: #deep_learning, #ai"
        )

    def test_minimal_metadata_omits_empty_lines(self):
        from mattersync.rendering import Renderer

        assert Renderer().render_metadata(_record()) == (
            "## Metadata\n"
            "* URL: [https://example.com/a](https://example.com/a)"
        )

    def test_date_is_rendered_in_utc(self):
        from datetime import timedelta
        from mattersync.rendering import Renderer

        late_evening_west = datetime(
            2023, 5, 6, 22, 0, tzinfo=timezone(timedelta(hours=-5)),
        )
        out = Renderer().render_metadata(_record(publication_date=late_evening_west))
        assert "* Published Date: 2023-05-07" in out

    def test_no_html_escaping(self):
        from mattersync.rendering import Renderer

        out = Renderer().render_metadata(_record(author="Tom & Jerry <co>"))
        assert "* Author: Tom & Jerry <co>" in out


class TestHighlights:
    def test_highlight_without_note(self):
        from mattersync.rendering import Renderer

        assert Renderer().render_annotation(_annotation("Quote")) == "* Quote"

    def test_highlight_with_note(self):
        from mattersync.rendering import Renderer

        out = Renderer().render_annotation(_annotation("Quote", note="Mine"))
        assert out == "* Quote\n  * **Note**: Mine"

    def test_highlights_sorted_by_position(self):
        from mattersync.rendering import Renderer

        anns = [_annotation("c", 30), _annotation("a", 5), _annotation("b", 12)]
        assert Renderer().render_annotations(anns) == "* a\n* b\n* c"


class TestEntry:
    def test_entry_layout(self):
        from mattersync.rendering import Renderer

        record = _record(annotations=[_annotation("b", 2), _annotation("a", 1)])
        assert Renderer().render_entry(record) == (
            "## Metadata\n"
            "* URL: [https://example.com/a](https://example.com/a)\n"
            "\n"
            "## Highlights\n"
            "* a\n"
            "* b"
        )


class TestOverrides:
    def test_custom_templates_used(self):
        from mattersync.rendering import Renderer

        renderer = Renderer("# {{title}}", "> {{text}}")
        record = _record(annotations=[_annotation("Quote")])
        assert renderer.render_entry(record) == (
            "# Title\n\n## Highlights\n> Quote"
        )

    def test_blank_override_falls_back_to_default(self):
        from mattersync.rendering import Renderer

        assert Renderer("   \n", "").render_annotation(_annotation("Q")) == "* Q"
        assert Renderer("", None).render_metadata(_record()).startswith("## Metadata")

    def test_malformed_template_raises_template_error(self):
        from mattersync.errors import TemplateError
        from mattersync.rendering import Renderer

        with pytest.raises(TemplateError):
            Renderer("{% if url %}unclosed").render_metadata(_record())

    def test_runtime_failure_raises_template_error(self):
        from mattersync.errors import TemplateError
        from mattersync.rendering import Renderer

        renderer = Renderer("{{ 1 // (tags | length) }}")
        with pytest.raises(TemplateError):
            renderer.render_metadata(_record(tags=[]))


class TestCheckTemplate:
    def test_valid_template_passes(self):
        from mattersync.rendering import check_template

        check_template("* {{text}}{% if note %} ({{note}}){% endif %}")

    def test_syntax_error_raises(self):
        from mattersync.errors import TemplateError
        from mattersync.rendering import check_template

        with pytest.raises(TemplateError):
            check_template("{{ text ")
