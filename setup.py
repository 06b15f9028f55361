from pathlib import Path
from setuptools import find_packages, setup


ROOT = Path(__file__).parent


def read_version() -> str:
    """Read ``__version__`` from the package without importing it."""
    for line in (ROOT / "nftscout" / "__init__.py").read_text().splitlines():
        if line.startswith("__version__"):
            return line.split("=", 1)[1].strip().strip("\"'")
    raise RuntimeError("nftscout.__version__ not found")


setup(
    name="nftscout",
    version=read_version(),
    description="Discover newly deployed NFT collections and mint each one exactly once",
    packages=find_packages(include=["nftscout", "nftscout.*"]),
    python_requires=">=3.11",
    install_requires=[
        "aiohttp>=3.9",
        "aiosqlite>=0.19",
        "eth-account>=0.13",
        "eth-utils>=4.0",
        "pydantic>=2.5",
        "SQLAlchemy[asyncio]>=2.0",
        "web3>=7.0",
    ],
    extras_require={
        "test": ["pytest>=7.4"],
    },
    entry_points={
        "console_scripts": ["nftscout=nftscout.main:main"],
    },
)
