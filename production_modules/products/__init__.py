"""
Products Module (``production_modules.products``).

Products, their formulas (quantity of each material per base batch), and
production feasibility against current or cached stock.
"""

from production_modules.products.service import ProductService

__all__ = ["ProductService"]
