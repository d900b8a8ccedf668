import tempfile
import unittest
from pathlib import Path

from elevsense.config import FusionConfig, config_from_mapping, load_config


class FusionConfigTests(unittest.TestCase):
    def test_defaults(self) -> None:
        cfg = FusionConfig()
        self.assertEqual(cfg.internal_ewma_alpha, 0.9)
        self.assertEqual(cfg.external_ewma_alpha, 0.2)
        self.assertEqual(cfg.complementary_alpha, 0.98)
        self.assertEqual(cfg.recording_duration_ms, 20_000)
        self.assertEqual(cfg.recording_tick_ms, 100)
        self.assertEqual(cfg.export_default, 0.0)

    def test_sanitized_clamps_limits(self) -> None:
        cfg = FusionConfig(
            internal_ewma_alpha=1.5,
            complementary_alpha=0.0,
            recording_duration_ms=-5,
            snapshot_queue_size=0,
        ).sanitized()
        self.assertLess(cfg.internal_ewma_alpha, 1.0)
        self.assertGreater(cfg.complementary_alpha, 0.0)
        self.assertEqual(cfg.recording_duration_ms, 1)
        self.assertEqual(cfg.snapshot_queue_size, 1)

    def test_mapping_with_fusion_block(self) -> None:
        cfg = config_from_mapping(
            {
                "fusion": {"external_ewma_alpha": 0.35},
                "recording": {"recording_duration_ms": 5000},
                "export_default": -1,
                "unknown_key": "ignored",
            }
        )
        self.assertAlmostEqual(cfg.external_ewma_alpha, 0.35)
        self.assertEqual(cfg.recording_duration_ms, 5000)
        self.assertEqual(cfg.export_default, -1.0)
        self.assertEqual(cfg.internal_ewma_alpha, 0.9)

    def test_unknown_keys_are_reported(self) -> None:
        with self.assertLogs("elevsense.config.runtime", level="WARNING") as logs:
            cfg = config_from_mapping({"filters": {"internal_ewma_alfa": 0.5}})
        self.assertIn("internal_ewma_alfa", logs.output[0])
        self.assertEqual(cfg.internal_ewma_alpha, 0.9)

    def test_empty_mapping_gives_defaults(self) -> None:
        self.assertEqual(config_from_mapping(None), FusionConfig())
        self.assertEqual(config_from_mapping({}), FusionConfig())

    def test_load_config_from_yaml(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "fusion.yaml"
            path.write_text("fusion:\n  complementary_alpha: 0.95\n  recording_tick_ms: 50\n", encoding="utf-8")

            cfg = load_config(path)

        self.assertAlmostEqual(cfg.complementary_alpha, 0.95)
        self.assertEqual(cfg.recording_tick_ms, 50)

    def test_missing_file_falls_back_to_defaults(self) -> None:
        self.assertEqual(load_config(None), FusionConfig())
        self.assertEqual(load_config("/nonexistent/elevsense.yaml"), FusionConfig())

    def test_non_mapping_yaml_is_rejected(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "bad.yaml"
            path.write_text("- 1\n- 2\n", encoding="utf-8")
            with self.assertRaises(ValueError):
                load_config(path)


if __name__ == "__main__":
    unittest.main()
