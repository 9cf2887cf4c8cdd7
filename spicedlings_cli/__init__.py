"""Deploy CLI of the Spicedlings Final Projects."""
