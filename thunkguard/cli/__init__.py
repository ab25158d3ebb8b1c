# CLI package for thunkguard
"""
Read-only CLI for checking importable values.

Commands:
    thunkguard check      — Check a module attribute for deferred cells
    thunkguard catalogue  — Show registered adapters
"""
