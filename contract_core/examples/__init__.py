"""Reference contracts built with ContractBuilder."""
