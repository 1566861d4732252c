"""
memfuse Setup Script

Install with: pip install -e .
"""

from setuptools import setup, find_packages

setup(
    name='memfuse',
    version='0.1.0',
    description='Hybrid long-term memory retrieval: vector similarity fused with a typed relationship graph',
    author='memfuse Team',
    packages=find_packages(include=['memfuse', 'memfuse.*']),
    package_data={
        'memfuse.weights': ['config/*.yaml'],
    },
    include_package_data=True,
    install_requires=[
        'numpy>=1.26.0',
        'pydantic>=2.5.0',
        'pyyaml>=6.0.1',
        'structlog>=23.2.0',
    ],
    extras_require={
        'dev': [
            'pytest>=7.4.0',
            'pytest-asyncio>=0.21.0',
        ],
    },
    python_requires='>=3.11',
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Developers',
        'Intended Audience :: Science/Research',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Topic :: Scientific/Engineering :: Artificial Intelligence',
    ],
)
