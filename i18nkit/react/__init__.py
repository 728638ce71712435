"""React support: extraction, rewriting and restore over the TypeScript grammar."""
