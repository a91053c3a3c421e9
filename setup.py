from setuptools import setup

with open("README.md", "r", encoding="utf-8") as fp:
    long_description = fp.read()

setup(
    name="mcmanager",
    version="1.0.0",
    description="mcmanager is a small Minecraft manager installing releases with optional Fabric "
                "or Forge installers, importing modpacks and logging in with Microsoft.",
    author="mcmanager contributors",
    packages=["mcmanager", "mcmanager.cli"],
    install_requires=["certifi"],
    extras_require={"test": ["pytest"]},
    entry_points={"console_scripts": ["mcmanager = mcmanager.cli:main"]},
    python_requires=">=3.8",
    url="https://github.com/mcmanager/mcmanager",
    long_description=long_description,
    long_description_content_type="text/markdown",
    license="GPL-3.0",
)
