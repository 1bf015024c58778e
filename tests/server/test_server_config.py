import unittest

from app_config_schema import UIServerSettings
from server.config import HEALTHZ_PATH, ServerConfigurationError, UIServerConfig


class UIServerConfigTests(unittest.TestCase):
    def test_from_settings_copies_host_and_port(self) -> None:
        config = UIServerConfig.from_settings(
            UIServerSettings(enabled=True, host="0.0.0.0", port=9000)
        )

        self.assertTrue(config.enabled)
        self.assertEqual("0.0.0.0", config.host)
        self.assertEqual(9000, config.port)
        self.assertEqual("/ws", config.websocket_path)
        self.assertEqual("/healthz", HEALTHZ_PATH)

    def test_defaults_keep_channel_disabled(self) -> None:
        config = UIServerConfig.from_settings(UIServerSettings())

        self.assertFalse(config.enabled)
        self.assertEqual("127.0.0.1", config.host)
        self.assertEqual(8765, config.port)

    def test_rejects_invalid_port_and_empty_host(self) -> None:
        for settings in (
            UIServerSettings(enabled=True, host="127.0.0.1", port=0),
            UIServerSettings(enabled=True, host="127.0.0.1", port=70000),
            UIServerSettings(enabled=True, host="  ", port=8765),
        ):
            with self.subTest(settings=settings):
                with self.assertRaises(ServerConfigurationError):
                    UIServerConfig.from_settings(settings)


if __name__ == "__main__":
    unittest.main()
