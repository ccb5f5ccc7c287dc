import os.path

from setuptools import find_packages, setup

from sqlalchemy_imagebehavior.version import VERSION


def readme():
    try:
        with open(os.path.join(os.path.dirname(__file__), 'README.rst')) as f:
            return f.read()
    except (IOError, OSError):
        pass


install_requires = [
    'SQLAlchemy >= 1.4.0',
    'Wand >= 0.6.0'
]

tests_require = [
    'pytest >= 8.2',
    'WebOb'
]


setup(
    name='SQLAlchemy-ImageBehavior',
    version=VERSION,
    description='SQLAlchemy extension for managing image files named '
                'after entity attributes',
    long_description=readme(),
    license='MIT License',
    packages=find_packages(exclude=['tests', 'tests.*']),
    install_requires=install_requires,
    tests_require=tests_require,
    extras_require={'tests': tests_require},
    python_requires='>=3.7',
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: MIT License',
        'Operating System :: OS Independent',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3 :: Only',
        'Programming Language :: Python :: Implementation :: CPython',
        'Programming Language :: Python :: Implementation :: PyPy',
        'Topic :: Database :: Front-Ends',
        'Topic :: Multimedia :: Graphics'
    ]
)
