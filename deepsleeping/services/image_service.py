# deepsleeping/services/image_service.py

import io
from PIL import Image, UnidentifiedImageError

DEFAULT_TARGET_WIDTH = 600
DEFAULT_JPEG_QUALITY = 80

def resize_image_to_width(image_bytes: bytes, target_width: int = DEFAULT_TARGET_WIDTH,
                          quality: int = DEFAULT_JPEG_QUALITY) -> bytes:
    """
    이미지를 지정한 폭으로 맞추고(비율 유지) 고정 품질의 JPEG 으로 다시 인코딩합니다.
    원본이 목표 폭보다 작아도 목표 폭으로 맞춥니다.
    """
    if target_width <= 0:
        raise ValueError(f"target_width 는 양수여야 합니다: {target_width}")

    try:
        image = Image.open(io.BytesIO(image_bytes))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ValueError(f"이미지를 읽을 수 없습니다: {e}")

    # JPEG 은 알파 채널을 지원하지 않으므로 RGB 로 통일
    if image.mode != "RGB":
        image = image.convert("RGB")

    scale = target_width / image.width
    target_height = max(1, round(image.height * scale))
    resized = image.resize((target_width, target_height), Image.Resampling.LANCZOS)

    output = io.BytesIO()
    resized.save(output, format="JPEG", quality=quality)
    return output.getvalue()
