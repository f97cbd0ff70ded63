"""
로컬 개발용 시드 스크립트
스트리머 1명, 설정, 판매 알림 2개(이미지/오디오)를 생성하고 위젯 공개 키를 출력
"""

import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from streala.core.security import create_access_token
from streala.database.connection import SessionLocal
from streala.models import Alert, MediaType, Streamer, StreamerSettings


def seed_streamer_data():
    """기본 스트리머/알림 시드"""

    db = SessionLocal()
    try:
        streamer = db.query(Streamer).filter(Streamer.handle == "demo").first()
        if streamer is None:
            streamer = Streamer(
                auth_user_id="demo-auth-user",
                handle="demo",
                display_name="Demo Streamer",
                email="demo@streala.app",
            )
            db.add(streamer)
            db.flush()
            db.add(
                StreamerSettings(
                    streamer_id=streamer.id,
                    overlay_image_duration_seconds=5,
                    widget_position="center",
                    alert_start_delay_seconds=0,
                    alert_between_delay_seconds=1,
                    notification_retention_days=30,
                )
            )
            db.add_all(
                [
                    Alert(
                        streamer_id=streamer.id,
                        title="Buzina",
                        media_type=MediaType.AUDIO.value,
                        media_path="alerts/demo/buzina.mp3",
                        price_cents=500,
                        duration_seconds=3,
                    ),
                    Alert(
                        streamer_id=streamer.id,
                        title="Meme",
                        media_type=MediaType.IMAGE.value,
                        media_path="alerts/demo/meme.png",
                        price_cents=2500,
                    ),
                ]
            )

        db.commit()
        print("✅ 스트리머 시드 데이터 생성 완료")
        print(f"🔑 위젯 공개 키: {streamer.public_key}")
        print(f"🪪 세션 토큰: {create_access_token(streamer.auth_user_id)}")
        for alert in db.query(Alert).filter(Alert.streamer_id == streamer.id).all():
            print(f"   - {alert.id} {alert.title} ({alert.media_type}, {alert.price_cents}c)")

    except Exception as e:
        db.rollback()
        print(f"❌ 시드 데이터 생성 실패: {str(e)}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed_streamer_data()
