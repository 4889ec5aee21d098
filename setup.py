from setuptools import setup

setup(
    name="frame-enhancer",
    version="0.1.0",
    description="Profile-driven image enhancement for camera frames",
    python_requires=">=3.8",
    py_modules=[
        "config",
        "denoise_filters",
        "detail_estimator",
        "enhance_client",
        "enhancement_profile",
        "errors",
        "frame_codec",
        "frame_enhancer",
        "frame_relay",
        "logger",
        "main",
        "model_selector",
        "pixel_buffer",
        "portrait_filters",
        "sharpen_filters",
        "tone_filters",
        "web_app",
    ],
    install_requires=[
        "numpy",
        "opencv-python",
        "python-dotenv",
        "requests",
        "Flask",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "frame-enhancer-server=web_app:main",
            "frame-enhancer-camera=main:main",
        ],
    },
)
