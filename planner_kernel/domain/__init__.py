"""Pure domain constants and value helpers -- zero I/O."""
