"""The staleness engine at the core of cvm.

This package provides:
- Tree diffing: which paths changed between the reference and current trees
- Evaluation: whether each package's version kept up with its sources
- Policy dispatch: what to do about it (pass, warn, fail, or bump)
"""
