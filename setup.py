from setuptools import setup, find_packages

setup(
    name='gas-pipeline-optimizer',
    version='0.1.0',
    description='Flow and pressure optimization engine for gas transmission pipeline networks',
    python_requires='>=3.9',
    packages=find_packages(where='src'),
    package_dir={'': 'src'},
    install_requires=[
        'numpy',
        'scipy>=1.9',
        'networkx',
        'pydantic>=2',
        'pandas',
        'matplotlib',
        'seaborn',
    ],
    extras_require={
        'test': [
            'pytest',
        ],
    },
    entry_points={
        'console_scripts': [
            'gas-optimizer=gas_optimizer.cli.main:main',
        ],
    },
)
