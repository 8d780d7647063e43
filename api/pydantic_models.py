from pydantic import BaseModel, Field
from typing import List, Optional

from disposal_workflow import DisposalAttempt, CompletionReceipt
from recycling_data import MaterialProfile
from levels import WizardLevel
from donation_data import DonationSite

# --- RECYCLE WORKFLOW ---

class MaterialResponse(BaseModel):
    materialId: str
    code: str
    displayName: str
    category: str
    recyclable: bool
    co2SavedKg: float
    points: int
    instructions: str
    funFact: str

    @classmethod
    def from_profile(cls, material: MaterialProfile) -> 'MaterialResponse':
        return cls(
            materialId=material.id,
            code=material.code,
            displayName=material.display_name,
            category=material.category,
            recyclable=material.is_recyclable,
            co2SavedKg=material.co2_saved_kg,
            points=material.point_value,
            instructions=material.disposal_instructions,
            funFact=material.fun_fact,
        )


class CompletionResponse(BaseModel):
    pointsAwarded: int
    newlyAwarded: bool
    co2SavedKg: float
    itemImageRef: Optional[str] = None
    proofImageRef: Optional[str] = None

    @classmethod
    def from_receipt(cls, receipt: CompletionReceipt) -> 'CompletionResponse':
        return cls(
            pointsAwarded=receipt.points_awarded,
            newlyAwarded=receipt.newly_awarded,
            co2SavedKg=receipt.co2_saved_kg,
            itemImageRef=receipt.item_image_ref,
            proofImageRef=receipt.proof_image_ref,
        )


class AttemptResponse(BaseModel):
    attemptId: str
    stage: str
    recognized: Optional[bool] = None
    material: Optional[MaterialResponse] = None
    verificationScore: float = 0.0
    verified: bool = False
    verificationOutcome: Optional[str] = None
    caveat: bool = False
    canRetry: bool = False
    completion: Optional[CompletionResponse] = None

    @classmethod
    def from_attempt(cls, attempt: DisposalAttempt,
                     receipt: Optional[CompletionReceipt] = None) -> 'AttemptResponse':
        material = attempt.classified_material
        classified = attempt.stage.value not in ('IDLE', 'ITEM_CAPTURED', 'UNAVAILABLE')
        return cls(
            attemptId=attempt.attempt_id,
            stage=attempt.stage.value,
            recognized=(material is not None) if classified else None,
            material=MaterialResponse.from_profile(material) if material else None,
            verificationScore=attempt.verification_score,
            verified=attempt.verified,
            verificationOutcome=attempt.verification_outcome.value if attempt.verification_outcome else None,
            caveat=attempt.caveat,
            canRetry=attempt.stage.value in ('UNAVAILABLE', 'ITEM_CAPTURED', 'PROOF_CAPTURED'),
            completion=CompletionResponse.from_receipt(receipt) if receipt else None,
        )

# --- ACTIONS ---

class EnergyActionRequest(BaseModel):
    actionId: str
    requestId: Optional[str] = None  # idempotency key; a retry with the same id is not re-awarded

class EnergyReadingRequest(BaseModel):
    kWh: float = Field(gt=0)

class EnergyActionResponse(BaseModel):
    actionId: str
    name: str
    description: str
    co2SavedKg: float
    points: int
    icon: str

class ActionLoggedResponse(BaseModel):
    pointsAwarded: int
    co2Kg: float
    message: str

class DonationSitesQuery(BaseModel):
    lat: Optional[float] = Field(default=None, ge=-90, le=90)
    lng: Optional[float] = Field(default=None, ge=-180, le=180)

class DonationRequest(BaseModel):
    siteId: str
    requestId: Optional[str] = None

class DonationSiteResponse(BaseModel):
    siteId: str
    name: str
    address: str
    type: str
    typeLabel: str
    latitude: float
    longitude: float
    hours: str
    phone: Optional[str] = None
    acceptedItems: List[str] = []
    description: str
    distanceMiles: Optional[float] = None

    @classmethod
    def from_site(cls, site: DonationSite, distance_miles: Optional[float] = None) -> 'DonationSiteResponse':
        return cls(
            siteId=site.id, name=site.name, address=site.address, type=site.type, typeLabel=site.type_label,
            latitude=site.latitude, longitude=site.longitude, hours=site.hours, phone=site.phone,
            acceptedItems=list(site.accepted_items), description=site.description, distanceMiles=distance_miles,
        )

class DonationLoggedResponse(ActionLoggedResponse):
    mealsProvided: int

# --- USERS ---

class FcmTokenUpdateRequest(BaseModel):
    fcmToken: str

class LevelResponse(BaseModel):
    level: int
    title: str
    minPoints: int
    icon: str

    @classmethod
    def from_level(cls, level: WizardLevel) -> 'LevelResponse':
        return cls(level=level.level, title=level.title, minPoints=level.min_points, icon=level.icon)

class ProfileResponse(BaseModel):
    userId: str
    wizardName: Optional[str] = None
    avatarUrl: Optional[str] = None
    totalPoints: int
    level: LevelResponse
    nextLevel: Optional[LevelResponse] = None
    levelProgress: float

class ActionLogEntry(BaseModel):
    actionId: str
    type: str
    pointsAwarded: int = 0
    details: dict = {}
    imagePath: Optional[str] = None
    timestamp: Optional[str] = None

class ActionHistoryResponse(BaseModel):
    actions: List[ActionLogEntry] = []
