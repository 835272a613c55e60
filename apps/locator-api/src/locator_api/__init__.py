"""HTTP presentation layer for the hospital search core."""
