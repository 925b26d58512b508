import unittest
from pathlib import Path
from tempfile import TemporaryDirectory

from linkpreview.config import ConfigError, PreviewConfig


class PreviewConfigTests(unittest.TestCase):
    def write_config(self, tmpdir: str, text: str) -> str:
        path = Path(tmpdir) / "config.yaml"
        path.write_text(text, encoding="utf-8")
        return str(path)

    def test_defaults(self) -> None:
        config = PreviewConfig()

        self.assertEqual(10000, config.fetch.timeout_ms)
        self.assertEqual([400, 401, 403], config.fetch.blocked_statuses)
        self.assertEqual(3600, config.cache.ttl_sec)
        self.assertEqual("link_meta:", config.cache.key_prefix)
        self.assertEqual(10, config.rate_limit.max_requests)
        self.assertEqual(60.0, config.rate_limit.window_sec)
        self.assertEqual(600, config.bot.suppress_delay_ms)
        self.assertEqual(0x1877F2, config.bot.embed_color)

    def test_from_yaml_overrides_sections(self) -> None:
        with TemporaryDirectory() as tmpdir:
            path = self.write_config(
                tmpdir,
                "fetch:\n"
                "  timeout_ms: 5000\n"
                "  blocked_statuses: [403, 429]\n"
                "rate_limit:\n"
                "  max_requests: 3\n"
                "bot:\n"
                "  embed_color: 0x00FF00\n"
                "logs:\n",
            )

            config = PreviewConfig.from_yaml(path)

        self.assertEqual(5000, config.fetch.timeout_ms)
        self.assertEqual([403, 429], config.fetch.blocked_statuses)
        self.assertEqual(3, config.rate_limit.max_requests)
        self.assertEqual(0x00FF00, config.bot.embed_color)
        self.assertEqual(3600, config.cache.ttl_sec)
        self.assertEqual("INFO", config.logs.log_level)

    def test_empty_file_uses_defaults(self) -> None:
        with TemporaryDirectory() as tmpdir:
            config = PreviewConfig.from_yaml(self.write_config(tmpdir, ""))

        self.assertEqual(10, config.rate_limit.max_requests)

    def test_errors(self) -> None:
        cases = {
            "missing": None,
            "not a mapping": "- a\n- b\n",
            "section not a mapping": "cache: 5\n",
            "unknown key": "cache:\n  colour: red\n",
            "invalid value": "rate_limit:\n  max_requests: 0\n",
            "invalid status": "fetch:\n  blocked_statuses: [999]\n",
            "invalid yaml": "fetch: [unclosed\n",
        }
        for name, text in cases.items():
            with self.subTest(case=name), TemporaryDirectory() as tmpdir:
                if text is None:
                    path = str(Path(tmpdir) / "nope.yaml")
                else:
                    path = self.write_config(tmpdir, text)
                with self.assertRaises(ConfigError):
                    PreviewConfig.from_yaml(path)


if __name__ == "__main__":
    unittest.main()
