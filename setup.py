"""
ASTKG Setup Script

Install with: pip install -e .
Tests: pip install -e ".[test]"
"""

from setuptools import setup, find_packages

setup(
    name='astkg',
    version='0.1.0',
    description='Code knowledge graph: AST ingestion into FalkorDB and hybrid entity retrieval',
    packages=find_packages(include=['astkg', 'astkg.*']),
    install_requires=[
        'structlog>=23.2.0',
        'falkordb>=1.0.0',
        'qdrant-client>=1.16.0',
        'sentence-transformers>=2.2.0',
        'torch>=2.0.0',
        'aiohttp>=3.9.0',
        'pyyaml>=6.0.1',
        'click>=8.1.0',
    ],
    extras_require={
        'test': [
            'pytest>=7.4.0',
            'pytest-asyncio>=0.23.0',
        ],
    },
    entry_points={
        'console_scripts': [
            'astkg=astkg.cli.commands:cli',
        ],
    },
    python_requires='>=3.11',
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Topic :: Software Development',
        'Topic :: Scientific/Engineering :: Artificial Intelligence',
    ],
)
