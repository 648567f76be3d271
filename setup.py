"""
Setup script for Hes1 Bayes package
"""

from setuptools import setup, find_packages

setup(
    name='hes1-bayes',
    version='0.1.0',
    author='Hes1 Bayes contributors',
    description='Bayesian parameter estimation and credible bands for the Hes1 oscillator',
    license='MIT',

    # Package discovery from src/
    packages=find_packages(where="src"),
    package_dir={"": "src"},

    python_requires='>=3.9',

    install_requires=[
        'numpy>=1.22.0',  # np.percentile(method=...)
        'scipy>=1.7.0',
        'matplotlib>=3.5.0',
        'seaborn>=0.11.0',
        'pandas>=1.3.0',
        'tqdm>=4.62.0',
        'joblib>=1.1.0',
    ],

    extras_require={
        'bayesian': [
            'pymc>=5.10.0',  # Modern PyMC (v5+)
            'arviz>=0.14.0,<1.0',
            'pytensor>=2.18.0',  # Modern backend
        ],
        'dev': [
            'pytest>=7.0.0',
            'pytest-cov>=3.0.0',
            'black>=22.0.0',
            'flake8>=4.0.0',
        ],
        'all': [
            'pymc>=5.10.0',
            'arviz>=0.14.0,<1.0',
            'pytensor>=2.18.0',
            'pytest>=7.0.0',
            'pytest-cov>=3.0.0',
            'black>=22.0.0',
            'flake8>=4.0.0',
        ],
    },

    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Science/Research',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Topic :: Scientific/Engineering :: Bio-Informatics',
        'Topic :: Scientific/Engineering :: Mathematics',
    ],

    keywords='systems-biology hes1 oscillator ode bayesian-inference mcmc pymc',
)
