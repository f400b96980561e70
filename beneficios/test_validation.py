#!/usr/bin/env python3
"""
Tests for the correction table and the region consistency check.
"""
import pytest

from beneficios.classifier import MAX_REASONS
from beneficios.models import ClassificationResult, UNKNOWN_REGION
from beneficios.validation import apply_corrections, region_warnings, validate_and_correct


def test_correction_forces_category_and_floor():
    original = ClassificationResult(category="Gastronomía", confidence=0.2, reasons=["[+1.5] Gastronomía: x"])
    corrected = apply_corrections("Asesoramiento para jubilados", original)
    assert corrected.category == "Servicios"
    assert corrected.confidence == 0.6
    assert corrected.reasons[-1] == "[CORREGIDO] De Gastronomía a Servicios por validación"
    # the input result is not mutated
    assert original.category == "Gastronomía"
    assert len(original.reasons) == 1


def test_correction_keeps_higher_confidence():
    result = apply_corrections("Hotel del Mar", ClassificationResult(category="Transporte", confidence=0.9))
    assert result.category == "Alojamiento"
    assert result.confidence == 0.9


def test_rules_fire_sequentially():
    result = apply_corrections("Cabañas y termas", ClassificationResult(category="Gastronomía", confidence=0.1))
    assert result.category == "Excursiones y Actividades"
    assert [r for r in result.reasons if r.startswith("[CORREGIDO]")] == [
        "[CORREGIDO] De Gastronomía a Alojamiento por validación",
        "[CORREGIDO] De Alojamiento a Excursiones y Actividades por validación",
    ]


def test_corrections_keep_reasons_bounded():
    evidence = [f"[+1.0] Gastronomía: k{i}" for i in range(MAX_REASONS)]
    original = ClassificationResult(category="Gastronomía", confidence=0.1, reasons=evidence)
    result = apply_corrections("Cabañas y termas", original)
    assert len(result.reasons) == MAX_REASONS
    assert result.reasons[:MAX_REASONS - 2] == evidence[:MAX_REASONS - 2]
    assert all(r.startswith("[CORREGIDO]") for r in result.reasons[-2:])
    assert len(original.reasons) == MAX_REASONS


def test_rule_ignores_categories_outside_overridable_set():
    original = ClassificationResult(category="Salud", confidence=0.4)
    assert apply_corrections("Seguro de sepelio", original) is original


def test_region_warning_is_emitted_but_not_applied():
    result = ClassificationResult(category="Alojamiento", confidence=1.0)
    corrected, warnings = validate_and_correct("Hotel Las Hayas Ushuaia", result, "Mendoza")
    assert warnings == ["Provincia inconsistente: título sugiere Tierra del Fuego pero se detectó Mendoza"]
    assert corrected is result


@pytest.mark.parametrize("title,region", [
    ("Hotel Las Hayas Ushuaia", "Tierra del Fuego"),
    ("Hotel Las Hayas Ushuaia", UNKNOWN_REGION),
    ("Hotel Central", "Mendoza"),
])
def test_no_region_warning(title, region):
    assert region_warnings(title, region) == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
