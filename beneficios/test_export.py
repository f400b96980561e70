#!/usr/bin/env python3
"""
Tests for the DataFrame export helpers.
"""
import json

import pandas as pd
import pytest

from beneficios.database import db_connect, db_init, upsert_documents
from beneficios.export import EXPORT_COLUMNS, export_collection, listings_frame, save_output_rows, summarize
from beneficios.models import CanonicalListing


def sample_listings():
    return [
        CanonicalListing(
            title="Hotel Sol", canonical_url="https://x.org/sol", category="Alojamiento", region="Salta",
            source_id="hotel-sol-1", image_url="https://x.org/sol.jpg", confidence=0.8,
            reasons=["[+5] Alojamiento: estructura", '[+3] Alojamiento: título: "hotel"'],
        ),
        CanonicalListing(
            title="Parrilla Don Juan", canonical_url="https://x.org/parrilla", category="Gastronomía",
            region="Salta", source_id="parrilla-1",
        ),
        CanonicalListing(
            title="Cabañas del Lago", canonical_url="https://x.org/lago", category="Alojamiento",
            region="Neuquén", source_id="cabanas-1",
        ),
    ]


def test_listings_frame_columns():
    df = listings_frame(sample_listings())
    assert list(df.columns) == EXPORT_COLUMNS
    assert len(df) == 3
    first = df.iloc[0]
    assert first["doc_id"] == "hotel-sol-1"
    assert first["reasons"] == '[+5] Alojamiento: estructura | [+3] Alojamiento: título: "hotel"'
    assert df.iloc[1]["image_url"] == ""


def test_empty_frame_keeps_columns():
    df = listings_frame([])
    assert list(df.columns) == EXPORT_COLUMNS
    assert summarize(df) == {"by_category": {}, "by_region": {}}


def test_summarize_counts():
    summary = summarize(listings_frame(sample_listings()))
    assert summary["by_category"] == {"Alojamiento": 2, "Gastronomía": 1}
    assert summary["by_region"] == {"Salta": 2, "Neuquén": 1}


def test_save_csv_and_json(tmp_path):
    df = listings_frame(sample_listings())

    csv_path = tmp_path / "out.csv"
    save_output_rows(df, str(csv_path))
    back = pd.read_csv(csv_path)
    assert list(back.columns) == EXPORT_COLUMNS
    assert back["title"].tolist() == ["Hotel Sol", "Parrilla Don Juan", "Cabañas del Lago"]

    json_path = tmp_path / "out.json"
    save_output_rows(df, str(json_path))
    records = json.loads(json_path.read_text(encoding="utf-8"))
    assert records[2]["region"] == "Neuquén"
    assert "Neuquén" in json_path.read_text(encoding="utf-8")


def test_export_collection(tmp_path):
    conn = db_connect(str(tmp_path / "store.db"))
    db_init(conn, "beneficios")
    upsert_documents(conn, "beneficios", [(x.source_id, x.to_document()) for x in sample_listings()])
    df = export_collection(conn, "beneficios")
    conn.close()

    assert list(df.columns) == EXPORT_COLUMNS
    assert df["title"].tolist() == ["Cabañas del Lago", "Hotel Sol", "Parrilla Don Juan"]
    assert df.iloc[1]["reasons"].startswith("[+5] Alojamiento")
    assert df.iloc[0]["reasons"] == ""


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
