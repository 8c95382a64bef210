"""Assembly homology search over MinHash sketch namespaces."""

__version__ = "0.1.0"
