"""Setup script for dptclf."""

from setuptools import setup, find_packages
from pathlib import Path

# Read README
readme_file = Path(__file__).parent / "README.md"
if readme_file.exists():
    long_description = readme_file.read_text()
else:
    long_description = "dptclf: evaluation of a pre-trained CD4/CD8/DP T cell classifier"

# Read requirements
requirements_file = Path(__file__).parent / "requirements.txt"
if requirements_file.exists():
    requirements = requirements_file.read_text().strip().split('\n')
else:
    requirements = [
        'numpy>=1.20.0',
        'pandas>=1.3.0',
        'scipy>=1.7.0',
        'scikit-learn>=1.0.0',
        'anndata>=0.8.0',
        'scanpy>=1.9.0',
        'matplotlib>=3.4.0',
        'seaborn>=0.13.0',
        'pyyaml>=5.4.0',
        'joblib>=1.0.0',
    ]

# Optional dependencies
extras_require = {
    'dev': ['pytest', 'black', 'flake8'],
}

setup(
    name='dptclf',
    version='0.1.0',
    description='Evaluation of a pre-trained CD4/CD8/DP T cell random forest classifier',
    long_description=long_description,
    long_description_content_type='text/markdown',
    packages=find_packages(exclude=['tests', 'tests.*']),
    py_modules=['run_evaluation'],
    install_requires=requirements,
    extras_require=extras_require,
    entry_points={
        'console_scripts': [
            'dptclf-evaluate=run_evaluation:main',
        ],
    },
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Science/Research',
        'Topic :: Scientific/Engineering :: Bio-Informatics',
        'Programming Language :: Python :: 3',
    ],
    python_requires='>=3.9',
)
