"""NFTScout: discover new NFT collections and mint each one exactly once."""

__version__ = "0.1.0"
