#!/usr/bin/env python3
"""
Tests for the page-independent parts of the scraper.
"""
import json

import pytest

from beneficios.scraper import build_signals, map_query, parse_jsonld


def test_parse_jsonld_types_and_location():
    blocks = [
        json.dumps({
            "@context": "https://schema.org",
            "@graph": [
                {"@type": "WebPage", "name": "Hotel Sol"},
                {"@type": ["Hotel", "LodgingBusiness"],
                 "address": {"addressLocality": "Cafayate", "addressRegion": "Salta"}},
            ],
        }),
        "{not json",
        "",
    ]
    types, pieces = parse_jsonld(blocks)
    assert types == ["WebPage", "Hotel", "LodgingBusiness"]
    assert "Salta" in pieces
    assert "Cafayate" in pieces
    assert "Hotel Sol" in pieces


def test_parse_jsonld_event_location():
    block = json.dumps({
        "@type": "Event",
        "location": {"@type": "Place", "address": {"addressRegion": "Mendoza"}},
        "areaServed": "Cuyo",
    })
    types, pieces = parse_jsonld([block])
    assert types == ["Event", "Place"]
    assert pieces.count("Mendoza") >= 1
    assert "Cuyo" in pieces


@pytest.mark.parametrize("src,expected", [
    ("https://www.google.com/maps/embed/v1/place?q=Hotel%20Sol%2C%20Salta&key=x", "Hotel Sol, Salta"),
    ("https://maps.google.com/maps?query=Ushuaia", "Ushuaia"),
    ("https://www.google.com/maps/embed?pb=xyz", ""),
    ("", ""),
    (None, ""),
])
def test_map_query(src, expected):
    assert map_query(src) == expected


def test_build_signals_card_only():
    card = {
        "title": "Hotel Sol", "url": "https://x.org/beneficios/hotel-sol/",
        "description": "20% de descuento", "image": "https://x.org/thumb.jpg", "badges": ["Turismo"],
    }
    s = build_signals(card)
    assert s.title == "Hotel Sol"
    assert s.detail_text == "20% de descuento"
    assert s.list_image == "https://x.org/thumb.jpg"
    assert s.image_url == "https://x.org/thumb.jpg"
    assert s.badges == ["Turismo"]
    assert s.images == []


def test_build_signals_merges_detail():
    card = {"title": "Hotel Sol", "url": "https://x.org/beneficios/hotel-sol/", "description": "Promo"}
    detail = {
        "title": "Hotel Sol. Salta",
        "main_text": "Habitaciones  dobles",
        "meta_description": "Beneficio para afiliados",
        "tags": "Turismo",
        "captions": "Vista al cerro",
        "og_image": "https://x.org/og.jpg",
        "images": [
            {"src": "https://x.org/a.jpg", "alt": " Piscina ", "width": 800, "height": "600"},
            {"src": "", "alt": "vacía"},
        ],
        "schema_types": ["Hotel"],
        "structured_location_text": "Salta",
    }
    s = build_signals(card, detail)
    assert s.title == "Hotel Sol. Salta"
    assert s.detail_text == "Promo Habitaciones dobles Beneficio para afiliados Turismo Vista al cerro"
    assert [(i.src, i.alt, i.width, i.height) for i in s.images] == [("https://x.org/a.jpg", "Piscina", 800, 600)]
    assert s.image_url == "https://x.org/og.jpg"
    assert s.schema_types == ["Hotel"]
    assert s.structured_location_text == "Salta"
    assert s.url == "https://x.org/beneficios/hotel-sol/"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
