from llm_mail.models.campaign import BrandStyle, RecommendationItem, RecommendationSet
from llm_mail.services.recommendation_renderer import (
    inject_before_body_close,
    render_recommendations_html,
)


def item(n, **overrides):
    fields = dict(
        id=str(n),
        name=f"Item {n}",
        price=f"£{n}0.00",
        imageUrl=f"https://img/{n}.jpg",
        productUrl=f"https://shop/{n}",
    )
    fields.update(overrides)
    return RecommendationItem(**fields)


def test_inject_before_body_close():
    assert inject_before_body_close("<html><body>X</body></html>", "<div>Y</div>") == (
        "<html><body>X<div>Y</div>\n</body></html>"
    )


def test_inject_uses_last_body_close_case_insensitively():
    html = "<body><!-- </body> --></BODY >"

    assert inject_before_body_close(html, "<p/>") == "<body><!-- </body> --><p/>\n</BODY >"


def test_inject_appends_without_body_close():
    assert inject_before_body_close("<div>X</div>", "<p>Y</p>") == "<div>X</div>\n<p>Y</p>"


def test_empty_sets_render_nothing():
    assert render_recommendations_html(None) == ""
    assert render_recommendations_html(RecommendationSet()) == ""


def test_renders_seed_and_at_most_three_related_items():
    rec_set = RecommendationSet(
        seedItem=item(0, name="Beach Dress", sku="BD-1"),
        items=[item(n) for n in range(1, 6)],
    )

    html = render_recommendations_html(rec_set, BrandStyle(primaryColor="#123456", accentColor="#abcdef"))

    assert "Your pick" in html
    assert "Beach Dress" in html
    assert "SKU: BD-1" in html
    assert "You may also like" in html
    assert "Item 3" in html
    assert "Item 4" not in html
    assert 'width="33%"' in html
    assert "background-color:#123456" in html
    assert "color:#abcdef" in html
    assert html.startswith('<table role="presentation"')


def test_missing_fields_are_omitted():
    html = render_recommendations_html(RecommendationSet(items=[item(1, imageUrl=None, price=None, productUrl=None)]))

    assert "Item 1" in html
    assert "<img" not in html
    assert "<a " not in html
    assert "£" not in html
    assert "SKU" not in html
    assert "Your pick" not in html


def test_values_are_escaped():
    html = render_recommendations_html(RecommendationSet(items=[item(1, name='<b>"Bold"</b>')]))

    assert "<b>" not in html
    assert "&lt;b&gt;&quot;Bold&quot;&lt;/b&gt;" in html
