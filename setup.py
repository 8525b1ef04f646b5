#!/usr/bin/env python3

from setuptools import setup
import time

setup(
  name='''Deskopen''',
  version=time.strftime('%Y.%m.%d.%H.%M.%S', time.gmtime(1792368000)),
  description='''Open files and URLs with their freedesktop.org default applications and manage mimeapps.list associations.''',
  author='''Xyne''',
  author_email='''ac xunilhcra enyx, backwards''',
  py_modules=['''Deskopen'''],
  python_requires='>=3.5',
  install_requires=['''pyxdg'''],
  extras_require={
    'test' : ['''pytest'''],
  },
  entry_points={
    'console_scripts' : ['''deskopen = Deskopen:run'''],
  },
)
