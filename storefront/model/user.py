# --- storefront/model/user.py ---

from ..extensions import db

class User(db.Model):
    __tablename__ = "user"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(180), nullable=True)
    phone = db.Column(db.String(32), nullable=True, index=True)
    email = db.Column(db.String(255), unique=True, nullable=True, index=True)
    role = db.Column(db.String(50), nullable=False, default="user", index=True) # roles: user, manager, admin

    def as_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "phone": self.phone,
            "role": self.role
            }
