from .loader import ItemSeed, BidderSeed, PoolDefinition, seed_store

__all__ = ["ItemSeed", "BidderSeed", "PoolDefinition", "seed_store"]
