__AUTHOR__ = 'pg-backup contributors'
__LICENSE__ = 'GPLv3'

import os
import re
from pathlib import Path

from setuptools import find_namespace_packages, setup

with open(Path(__file__).parent / 'src' / 'pg_backup' / 'version.py') as f:
    __VERSION__ = re.search(r"__VERSION__ = '([^']+)'", f.read()).group(1)

with open(Path(__file__).parent / 'README.md') as f:
    lines = f.readlines()
    filtered = [
        x for x in lines
        if not re.match(r'^[\[!]{2}', x) and len(x) > 0
    ]
    readme = ''.join(filtered)

with open(Path(__file__).parent / 'requirements.txt') as f:
    requirements = f.read()

package_data = {
    'pg_backup.data': ['*.toml'],
}

data_files = None
if os.environ.get('DEB_BUILD') in ('1', 'true', 'True'):
    data_files = [
        ('/etc', ['src/pg_backup/data/default.toml']),
        ('/usr/share/doc/pg-backup', ['README.md']),
    ]

setup(
    name='pg_backup',
    python_requires=">=3.10",
    version=__VERSION__,
    license=__LICENSE__,
    author=__AUTHOR__,
    maintainer=__AUTHOR__,
    description='Rotated daily and weekly backups of PostgreSQL servers with pg_dump.',
    long_description=readme.split('## Installation')[0].split('# pg-backup')[-1].strip(),
    long_description_content_type='text/markdown',
    package_dir={'': 'src'},
    packages=find_namespace_packages(where='src'),
    package_data=package_data,
    entry_points={
        'console_scripts': ['pg-backup=pg_backup.run:main'],
    },
    install_requires=requirements,
    extras_require={
        'test': ['pytest', 'freezegun'],
    },
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: System Administrators',
        'Topic :: System :: Archiving :: Backup',
        'Topic :: Database',
        'License :: OSI Approved :: GNU General Public License v3 (GPLv3)',
        'Programming Language :: Python :: 3',
    ],
    data_files=data_files
)
