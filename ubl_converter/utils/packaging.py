"""
ZIP packaging of signed XML files.
"""
import logging
import os
import zipfile

from ubl_converter.utils.error_responses import PackagingFailed

logger = logging.getLogger(__name__)


def zip_path_for(xml_path: str) -> str:
    """Archive path for an XML file: same directory and stem, .zip extension."""
    stem, _ = os.path.splitext(xml_path)
    return f"{stem}.zip"


def zip_xml_file(xml_path: str) -> str:
    """
    Package an XML file into a ZIP archive next to it.

    The archive holds a single deflated entry named after the XML base name.

    Args:
        xml_path: Path of the XML file

    Returns:
        Path of the created archive

    Raises:
        PackagingFailed: If the archive cannot be written
    """
    zip_path = zip_path_for(xml_path)
    entry_name = os.path.basename(xml_path)
    logger.debug(f"Packaging {xml_path} into {zip_path}")

    try:
        with zipfile.ZipFile(zip_path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            archive.write(xml_path, arcname=entry_name)
    except (OSError, zipfile.BadZipFile) as e:
        raise PackagingFailed(f"Failed to create ZIP archive: {str(e)}", path=zip_path) from e

    logger.debug(f"ZIP archive created: {zip_path}")
    return zip_path
