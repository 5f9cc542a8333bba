"""Pure helpers without database or HTTP dependencies."""
