from setuptools import setup, find_packages

CORE_DEPS = [
    "requests",
    "curl_cffi",
    "cryptography",
    "python-dotenv",
    "colorama",
    "beautifulsoup4",
]

TEST_DEPS = [
    "pytest",
]

setup(
    name="embedgrab",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=CORE_DEPS,
    extras_require={
        "test": TEST_DEPS,
    },
    entry_points={
        "console_scripts": [
            "embedgrab=embedgrab.main:main",
        ],
    },
)
