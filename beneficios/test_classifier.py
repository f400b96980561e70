#!/usr/bin/env python3
"""
Tests for the weighted multi-channel category classifier.
"""
import pytest

from beneficios.classifier import (
    EvidenceScore,
    W_STRUCTURE,
    W_TITLE,
    classify,
    compute_confidence,
    detect_category_from_structure,
)
from beneficios.dictionaries import CATEGORY_LABELS
from beneficios.models import ImageDescriptor, ListingSignals, UNKNOWN_CATEGORY


def make_signals(title="", detail="", url="", **kwargs) -> ListingSignals:
    return ListingSignals(title=title, detail_text=detail, url=url, **kwargs)


def test_no_evidence_is_unknown_with_zero_confidence():
    """A listing without any matching keyword falls back to the unknown label."""
    result = classify(make_signals(title="Beneficio exclusivo", url="https://example.org/b/123"))
    assert result.category == UNKNOWN_CATEGORY
    assert result.confidence == 0.0
    assert result.reasons == []


def test_bar_does_not_match_inside_barrio():
    """Word-boundary matching rejects substring hits."""
    result = classify(make_signals(title="Club de barrio"))
    assert not any('"bar"' in r for r in result.reasons)
    assert "Gastronomía" not in result.raw_scores
    assert result.category == UNKNOWN_CATEGORY


def test_bar_matches_as_a_word():
    result = classify(make_signals(title="Bar El Faro"))
    assert result.category == "Gastronomía"
    assert any('"bar"' in r for r in result.reasons)


def test_structure_pattern_votes_with_highest_weight():
    """Lodging wording in the title adds the structure weight plus the title keyword."""
    result = classify(make_signals(title="Hostería El Lago. Bariloche – Río Negro"))
    assert result.category == "Alojamiento"
    assert result.raw_scores["Alojamiento"] == pytest.approx(W_STRUCTURE + W_TITLE)
    assert result.confidence == 1.0
    assert result.reasons[0].startswith("[+5] Alojamiento: estructura")


def test_accent_variants_count_once():
    result = classify(make_signals(title="Excursión"))
    assert result.raw_scores["Excursiones y Actividades"] == pytest.approx(W_TITLE)


def test_menu_is_ignored_in_detail_body():
    """Template words like "menú" only count outside the detail channel."""
    detail_only = classify(make_signals(title="Beneficio", detail="Ver menú principal"))
    assert detail_only.category == UNKNOWN_CATEGORY

    in_title = classify(make_signals(title="Menú ejecutivo"))
    assert in_title.category == "Gastronomía"


def test_brand_and_schema_channels():
    result = classify(make_signals(title="Megatlon", schema_types=["SportsActivityLocation"]))
    assert result.category == "Deportes y Gimnasios"
    assert any("marca/entidad" in r for r in result.reasons)
    assert any("schema.org @type=SportsActivityLocation" in r for r in result.reasons)


def test_site_taxonomy_badges():
    result = classify(make_signals(title="Beneficio", badges=["restaurantes"]))
    assert result.category == "Gastronomía"
    assert any("taxonomía del sitio: restaurantes" in r for r in result.reasons)


def test_package_rule_spreads_weight():
    """Bundle titles split weight over lodging, tours and transfers from the body."""
    result = classify(make_signals(
        title="Paquete Iguazú",
        detail="Incluye 3 noches, excursión a Cataratas y traslado desde el aeropuerto",
    ))
    assert any("paquete: alojamiento/noches" in r for r in result.reasons)
    assert any("paquete: tours/entradas" in r for r in result.reasons)
    assert any("paquete: traslados" in r for r in result.reasons)
    assert result.category == "Alojamiento"


def test_image_and_url_channels():
    result = classify(make_signals(
        title="Beneficio",
        url="https://labancaria.org/beneficios/gimnasio-centro/",
        images=[ImageDescriptor(src="https://cdn.example.org/img/yoga_clases.jpg", alt="Clases de pilates")],
    ))
    assert result.category == "Deportes y Gimnasios"
    channels = {r.split(": ")[1] for r in result.reasons}
    assert {"url", "imagen.alt", "imagen.filename"} <= channels


def test_ocr_text_only_used_when_requested():
    signals = make_signals(title="Beneficio", ocr_text="Hotel con piscina")
    assert classify(signals, include_ocr=False).category == UNKNOWN_CATEGORY
    assert classify(signals, include_ocr=True).category == "Alojamiento"


def test_ties_follow_fixed_label_order():
    """Equal scores resolve to the earlier label, with zero margin."""
    result = classify(make_signals(title="Hotel", detail="", ocr_text=""), include_ocr=False)
    assert result.category == "Alojamiento"

    tie = classify(make_signals(title="Tour en taxi"))
    assert tie.raw_scores["Excursiones y Actividades"] == tie.raw_scores["Transporte"]
    assert tie.category == "Excursiones y Actividades"
    assert tie.confidence == 0.0


def test_detect_category_from_structure():
    assert detect_category_from_structure("Parrilla Don Julio") == ("Gastronomía", 0.9)
    assert detect_category_from_structure("20% de descuento en hotel") == ("Alojamiento", 0.9)
    assert detect_category_from_structure("15% off en estadía") == ("Alojamiento", 0.7)
    assert detect_category_from_structure("Librería") is None


@pytest.mark.parametrize("top,second,expected", [
    (0.0, 0.0, 0.0),
    (0.5, 0.0, 0.5),
    (3.0, 0.0, 1.0),
    (6.0, 2.0, 0.5),
    (2.0, 2.0, 0.0),
    (10.0, 1.0, 0.818),
])
def test_compute_confidence(top, second, expected):
    assert compute_confidence(top, second) == expected


@pytest.mark.parametrize("signals", [
    make_signals(title="Hotel Spa & Resort", detail="Habitaciones con desayuno, cena y excursiones"),
    make_signals(title="Curso de yoga", detail="Clínica deportiva, taller, gimnasio"),
    make_signals(title="", detail="", url=""),
    make_signals(title="Óptica", badges=["salud", "retail"], schema_types=["Optician", "Store"]),
])
def test_confidence_bounds_and_closed_label_set(signals):
    result = classify(signals)
    assert 0.0 <= result.confidence <= 1.0
    assert result.category in CATEGORY_LABELS
    assert (result.confidence == 0.0 and not result.reasons) or result.reasons


def test_evidence_score_ranking():
    ev = EvidenceScore()
    ev.add("Salud", 2.0, "a")
    ev.add("Alojamiento", 2.0, "b")
    ev.add("Transporte", 3.0, "c")
    assert [c for c, _ in ev.ranked()] == ["Transporte", "Alojamiento", "Salud"]
    assert ev.reasons == ["[+2] Salud: a", "[+2] Alojamiento: b", "[+3] Transporte: c"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
