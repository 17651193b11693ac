#!/usr/bin/env python

from setuptools import setup

setup(
    name='termtogif',
    version='0.1.0',
    license='BSD 3-clause license',
    description='Render asciicast terminal recordings as animated GIF files',
    long_description='A command line tool written in Python which replays '
                     'asciicast recordings of terminal sessions in a terminal '
                     'emulator and renders them as animated GIF files.',
    classifiers=[
        'Environment :: Console',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: BSD License',
        'Operating System :: MacOS',
        'Operating System :: Microsoft :: Windows',
        'Operating System :: POSIX :: Linux',
        'Programming Language :: Python',
        'Programming Language :: Python :: 3',
        'Topic :: Multimedia :: Graphics',
        'Topic :: Terminals'
    ],
    python_requires='>=3.8',
    packages=[
        'termtogif',
        'termtogif.tests'
    ],
    scripts=['scripts/termtogif'],
    package_data={
        'termtogif': ['data/*.ini'],
    },
    install_requires=[
        'numpy',
        'Pillow>=10.1',
        'pyte>=0.8.1',
        'requests',
        'wcwidth',
    ],
    extras_require={
        'dev': [
            'coverage',
            'pylint',
            'twine',
            'wheel',
        ]
    }
)
