# setup.py
from setuptools import setup, find_namespace_packages

setup(
    name="article-optimizer",
    version="0.1",
    packages=find_namespace_packages(include=["src", "src.*"]),
    python_requires=">=3.11",
    install_requires=[
        'python-dotenv',
        'pymongo',
        'tavily-python',
        'openai>=1.0',
        'pydantic>=2.0',
        'requests',
        'beautifulsoup4',
    ],
    extras_require={
        'test': ['pytest', 'httpx'],
    },
    entry_points={
        'console_scripts': [
            'article-optimizer=src.optimizer.cli:main',
        ],
    },
)
