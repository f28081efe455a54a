from setuptools import find_packages, setup

setup(
    name="slidereel-backend",
    version="1.0.0",
    package_dir={"": "backend"},
    packages=find_packages("backend", exclude=["tests", "tests.*"]),
    python_requires=">=3.11",
    install_requires=[
        "fastapi",
        "uvicorn",
        "pydantic>=2",
        "python-dotenv",
        "PyYAML",
        "aiohttp",
        "openai",
        "python-multipart",
        "pymupdf",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
            "httpx",
        ],
    },
    include_package_data=True,
    description="Backend package for SlideReel (slide deck to narrated video)",
    author="Andreas Malathouras",
    author_email="steelstridertgm@gmail.com",
)
