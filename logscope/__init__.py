"""logscope - analysis task orchestration for pluggable log analysis agents."""

__version__ = "0.1.0"
