from setuptools import setup

setup(
    name="remoteplay-inviter",
    author="Kamesuta, et al",
    version="0.1.0",
    description="Invite your friends via Discord and play Steam games together for free!",
    package_dir={'': 'src'},
    packages=["remoteplay_inviter", "remoteplay_inviter.relay", "remoteplay_inviter.steam"],
    python_requires=">=3.11",
    install_requires=[
        "aiohttp>=3.9",
        "certifi",
        "python-dotenv>=1.0",
        "tomli-w>=1.0",
        "yarl>=1.9",
    ],
    extras_require={
        "test": ["multidict", "pytest>=7.0", "pytest-asyncio>=0.23", "websockets>=13.0"],
    },
    entry_points={"console_scripts": ["remoteplay-inviter=remoteplay_inviter.app:main"]},
)
