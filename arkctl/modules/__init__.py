"""
arkctl Modules - Black Box Architecture

Each module is a self-contained black box with:
- Clear interface (public API)
- Hidden implementation details
- Single responsibility

Dependency order, leaf first: api, context, executor, bundle, ark, pipeline.
"""
