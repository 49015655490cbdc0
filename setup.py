"""Setup script for the CalendarApp Lite iCalendar engine."""

from pathlib import Path

from setuptools import find_packages, setup

# Read the README file
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text(encoding="utf-8") if readme_file.exists() else ""

# Read requirements, separating test dependencies
requirements_file = Path(__file__).parent / "requirements.txt"
requirements = []
test_requirements = []

if requirements_file.exists():
    for line in requirements_file.read_text().strip().split("\n"):
        line = line.strip()
        # Skip empty lines and comments
        if not line or line.startswith("#"):
            continue

        if "pytest" in line:
            test_requirements.append(line)
        else:
            requirements.append(line)

# icalendar is only used by the tests, as an independent reader of exports
test_requirements.append("icalendar>=5.0.0")

setup(
    name="calendarapp-lite",
    version="0.1.0",
    description="iCalendar (RFC 5545) import/export engine with RRULE expansion for CalendarApp",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="CalendarApp Team",
    # Package configuration
    packages=find_packages(include=["calendarapp_lite", "calendarapp_lite.*"]),
    include_package_data=True,
    # Dependencies
    install_requires=requirements,
    extras_require={
        "test": test_requirements,
        "dev": test_requirements
        + [
            "black>=23.0.0",
            "isort>=5.12.0",
            "mypy>=1.0.0",
        ],
    },
    # datetime.UTC
    python_requires=">=3.11",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Office/Business :: Scheduling",
        "Framework :: AsyncIO",
    ],
    keywords="calendar ics icalendar rrule subscription webcal async",
    entry_points={
        "console_scripts": [
            "calendarapp=calendarapp_lite.__main__:main",
        ],
    },
    zip_safe=False,
)
