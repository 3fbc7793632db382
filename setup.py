#!/usr/bin/env python3

from setuptools import setup, find_packages

# Read requirements
with open('requirements.txt', 'r') as f:
    requirements = [line.strip() for line in f if line.strip() and not line.startswith('#')]

# Read README for long description
with open('README.md', 'r', encoding='utf-8') as f:
    long_description = f.read()

setup(
    name="firewatch",
    version="1.0.0",
    description="Real-time color-based fire and smoke detection with a debounced alarm",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="Firewatch Team",

    # Package discovery
    packages=find_packages(include=['firewatch', 'firewatch.*']),
    include_package_data=True,

    # Python version requirement
    python_requires='>=3.9',

    # Dependencies
    install_requires=requirements,
    extras_require={
        'test': ['pytest>=7.0'],
    },

    # Entry points for command-line tools
    entry_points={
        'console_scripts': [
            'firewatch-monitor=firewatch.runtime.monitor:main',
        ],
    },

    # Package data
    package_data={
        'firewatch': ['config/*.yaml'],
    },

    # Classifiers
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: MIT License',
        'Operating System :: OS Independent',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Topic :: Scientific/Engineering :: Image Recognition',
    ],

    # Keywords
    keywords='fire smoke detection video alarm opencv',

    # License
    license='MIT',

    # Options
    zip_safe=False,
)
