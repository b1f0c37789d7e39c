"""
Tests for PNG rendering of level views
"""
import pytest

from f3_geomap.renderer import MapRenderer, _hex_to_rgba, _load_font

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


class TestMapRenderer:

    def test_render_root(self, session):
        png = MapRenderer().render(session.level_view())
        assert png.startswith(PNG_SIGNATURE)

    def test_render_to_file(self, session, tmp_path):
        path = tmp_path / "metro.png"
        view = session.level_view(session.navigation.from_query("org=20"))

        png = MapRenderer(theme="light").render(view, output_path=str(path), highlight_id=30)

        assert path.read_bytes() == png

    def test_render_decorative_and_hulls(self, session):
        """The umbrella star draws alongside data hulls"""
        view = session.level_view(session.navigation.from_query("level=1"))
        assert {item.shape.kind.value for item in view.drawn} == {"hull", "decorative"}
        assert MapRenderer(scale=0.5).render(view, title="Areas").startswith(PNG_SIGNATURE)

    def test_render_placeholder(self, session):
        view = session.level_view(session.navigation.from_query("org=32"))
        assert view.drawn == []
        assert MapRenderer().render(view).startswith(PNG_SIGNATURE)

    def test_unknown_theme(self):
        with pytest.raises(ValueError):
            MapRenderer(theme="neon")


class TestHelpers:

    def test_hex_to_rgba(self):
        assert _hex_to_rgba("#1E66F5") == (30, 102, 245, 255)
        assert _hex_to_rgba("11111b", 46) == (17, 17, 27, 46)

    def test_load_font(self):
        for bold in (False, True):
            bbox = _load_font(14, bold=bold).getbbox("Metro")
            assert bbox[2] > bbox[0]
