"""Rain-trigger compliance engine for EPA CGP SWPPP inspections."""
