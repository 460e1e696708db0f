"""VatGate: EU VAT validation and Shopify customer registration service."""

__version__ = "0.1.0"
