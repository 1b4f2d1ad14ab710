"""HSK Tutor backend package."""
