"""
Setup script for quiz-engine.

Quiz Engine is the state and results layer behind interactive quizzes:

1. Answer normalization - every question type reduced to one graded record
2. Result reconciliation - one canonical result from memory, storage or live state
3. Resumable sessions - debounced progress in redundant, bounded storage tiers

It has no command-line entry point; it is imported by the quiz front end.
"""

from setuptools import find_packages, setup

setup(
    name="quiz-engine",
    version="1.0.0",
    description="Quiz state, answer grading and results reconciliation engine",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    author="Right Learning",
    packages=find_packages(include=["quiz_engine", "quiz_engine.*"]),
    python_requires=">=3.10",
    install_requires=[
        # Config & Validation
        "pydantic>=2.6.0",
        "pydantic-settings>=2.0.0",
        # HTTP
        "httpx>=0.25.0",
        # Logging
        "loguru>=0.7.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Intended Audience :: Education",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
        "Topic :: Education :: Computer Aided Instruction (CAI)",
    ],
    keywords="quiz grading levenshtein education persistence",
)
