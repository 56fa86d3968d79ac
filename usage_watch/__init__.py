"""Claude usage monitor: badge, threshold alerts and card ordering over Telegram."""
