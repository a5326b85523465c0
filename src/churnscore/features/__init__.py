"""Feature analysis, binning and selection."""
