from sqlalchemy import Column, String, Date
from app.db.session import Base


class Document(Base):
    __tablename__ = "documents"

    id = Column(String, primary_key=True, index=True)
    owner_id = Column(String, nullable=False, index=True)  # driver or vehicle id
    document_type = Column(String, nullable=False)  # insurance, mot, licence, ...
    expiry_date = Column(Date, nullable=True)
