"""Install the editorial core package.

This installs the ``editorial`` package from ``core/``; the maintenance
scripts in ``core/scripts`` are run in place.
"""

from setuptools import setup, find_packages

setup(
    name='editorial-core',
    version='0.4.0',
    package_dir={'': 'core'},
    packages=find_packages(where='core'),
    zip_safe=False,
    python_requires='>=3.8',
    install_requires=[
        'flask',
        'bleach',
        'unidecode',
        'python-dateutil',
        'sqlalchemy>=2.0',
        'flask-sqlalchemy>=3.0',
        'retry==0.9.2',
        'pytz',
    ],
    extras_require={
        'test': ['pytest', 'mimesis'],
    },
    include_package_data=True
)
