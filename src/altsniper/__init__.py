"""Alt Sniper: AI alt text for Shopify product images."""

__version__ = "0.1.0"
