from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import CheckConstraint, Column, Integer, Numeric, String

db = SQLAlchemy()

# Table definitions back create_all and Flask-Migrate; queries go through store.Store.

class User(db.Model):
    __tablename__ = 'users'
    username = Column(String(100), primary_key=True)
    password = Column(String(256), nullable=False)

class Product(db.Model):
    __tablename__ = 'products'
    __table_args__ = (
        CheckConstraint('quantity >= 0', name='ck_products_quantity_non_negative'),
        {'sqlite_autoincrement': True},
    )
    id = Column(Integer, primary_key=True, autoincrement=True)
    productname = Column(String(200), nullable=False)
    description = Column(String(500), nullable=False)
    category = Column(String(100), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False, default=0)
