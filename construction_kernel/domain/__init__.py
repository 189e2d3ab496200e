"""Pure domain layer: record DTOs, money arithmetic, currency, clock."""
