"""autogazelle: keep Bazel build files current with a change-triggered gazelle daemon."""

__version__ = "0.1.0"

PROGRAM_NAME = "autogazelle"
