#!/usr/bin/env python3
"""
Setup configuration for playlist-library
Mirror remote playlists into a shared, deduplicated local audio library
"""

from setuptools import setup, find_packages

# Read README for long description
with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

# Core requirements (always installed)
core_requirements = [
    "yt-dlp>=2023.12.30",
    "ffmpeg-python>=0.2.0",
    "click>=8.1.7",
    "rich-click>=1.7.0",
    "rich>=13.0.0",
    "pyyaml>=6.0.1",
    "tqdm>=4.66.1",
    "python-dotenv>=1.0.0",
]

setup(
    name="playlist-library",
    version="0.1.0",
    author="playlist-library",
    description="Mirror remote playlists into a deduplicated audio library with portable M3U playlists",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["playlist_library", "playlist_library.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: End Users/Desktop",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Multimedia :: Sound/Audio",
        "Topic :: Multimedia :: Sound/Audio :: Conversion",
    ],
    python_requires=">=3.10",
    install_requires=core_requirements,
    extras_require={
        "dev": [
            "pytest>=7.4.3",
        ],
    },
    entry_points={
        "console_scripts": [
            "plib=playlist_library.cli:main",
        ],
    },
    keywords="playlist music library download m3u yt-dlp ffmpeg cli",
)
