"""Row-level SQL for the case store, one repository per table family."""
