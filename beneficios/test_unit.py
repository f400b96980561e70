#!/usr/bin/env python3
"""
Simple test runner for the beneficios package.
This uses Python's built-in unittest framework.
"""
import unittest


class TestModularStructure(unittest.TestCase):
    """Test the modular structure works correctly."""

    def test_imports(self):
        """Test that all modules can be imported successfully."""
        from beneficios.models import ListingSignals, CanonicalListing, signals_from_dict
        from beneficios.utils import init_logger, now_iso, normalize_text, slugify
        from beneficios.classifier import classify
        from beneficios.regions import resolve_region
        from beneficios.pipeline import process_batch
        from beneficios.reconcile import build_sync_plan, canonical_url
        from beneficios.database import db_connect, db_init, upsert_documents
        from beneficios.export import listings_frame, save_output_rows
        from beneficios.core import run_scrape

        # All imports successful if we reach here
        self.assertTrue(True)

    def test_text_cleaning(self):
        """Test text cleaning functionality."""
        from beneficios.utils import clean_text

        cleaned = clean_text("  Cabañas   del Lago  \n")
        self.assertEqual(cleaned, "Cabañas del Lago")

        cleaned = clean_text(None)
        self.assertEqual(cleaned, "")

    def test_normalize_text(self):
        """Test accent folding and idempotence of normalization."""
        from beneficios.utils import normalize_text

        self.assertEqual(normalize_text("  Neuquén   CÓRDOBA "), "neuquen cordoba")
        self.assertEqual(normalize_text("Ñandú"), "nandu")
        self.assertEqual(normalize_text(None), "")
        once = normalize_text("Río  Negro – Pingüino")
        self.assertEqual(normalize_text(once), once)

    def test_keyword_pattern(self):
        """Test word-boundary keyword matching."""
        from beneficios.utils import contains_term, keyword_pattern

        self.assertIsNone(keyword_pattern("bar").search("hotel en el barrio"))
        self.assertIsNotNone(keyword_pattern("bar").search("resto bar, cafe"))
        self.assertIsNotNone(keyword_pattern("check in").search("check  in desde las 14"))
        self.assertTrue(contains_term("cabanas en la pampa", "la pampa"))
        self.assertFalse(contains_term("", "la pampa"))

    def test_slugify(self):
        """Test slug generation."""
        from beneficios.utils import slugify

        self.assertEqual(slugify("Hostería El Lago. Bariloche – Río Negro"), "hosteria-el-lago-bariloche-rio-negro")
        self.assertEqual(slugify("¡!"), "")
        self.assertEqual(len(slugify("x" * 80)), 50)

    def test_signals_model(self):
        """Test ListingSignals creation from a JSON-style dict."""
        from beneficios.models import signals_from_dict, signals_to_dict

        signals = signals_from_dict({
            "title": "Hotel Sol",
            "url": "https://labancaria.org/beneficios/hotel-sol/",
            "images": [{"src": "https://x.org/a.jpg", "width": "800", "height": 600}, "bogus"],
            "badges": ["Turismo"],
            "unexpected": True,
        })
        self.assertEqual(signals.title, "Hotel Sol")
        self.assertEqual(signals.detail_text, "")
        self.assertEqual(len(signals.images), 1)
        self.assertEqual(signals.images[0].area, 480000)
        self.assertEqual(signals.images[0].filename, "a.jpg")
        self.assertEqual(signals_to_dict(signals)["badges"], ["Turismo"])

    def test_signals_are_immutable(self):
        """Test that scraped signals cannot be reassigned after creation."""
        import dataclasses
        from beneficios.models import ListingSignals

        signals = ListingSignals(title="Hotel Sol", detail_text="", url="https://x.org/sol")
        with self.assertRaises(dataclasses.FrozenInstanceError):
            signals.ocr_text = "Sucursal Rosario"
        enriched = dataclasses.replace(signals, ocr_text="Sucursal Rosario")
        self.assertEqual(enriched.ocr_text, "Sucursal Rosario")
        self.assertEqual(signals.ocr_text, "")


class TestCommandLine(unittest.TestCase):
    """Test the command line module."""

    def test_cli_module_import(self):
        """Test that the CLI module can be imported."""
        from beneficios import cli

        # Check that key functions exist
        self.assertTrue(hasattr(cli, 'main'))
        self.assertTrue(hasattr(cli, 'parse_args'))

    def test_default_args(self):
        """Test argument defaults come from the configuration."""
        from beneficios.cli import parse_args
        from beneficios.config import config

        args = parse_args([])
        self.assertEqual(args.db, config.DB_PATH)
        self.assertEqual(args.collection, config.COLLECTION)
        self.assertEqual(args.max_items, 0)
        self.assertFalse(parse_args(["--no-ocr"]).ocr)


if __name__ == "__main__":
    # Run the tests
    unittest.main(verbosity=2)
