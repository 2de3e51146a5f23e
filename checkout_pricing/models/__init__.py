"""Models — enums, errors and pydantic schemas for the pricing core."""
