"""SmartFX - stablecoin swaps at an attested off-chain rate."""

__version__ = "0.1.0"
